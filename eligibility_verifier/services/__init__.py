"""
Services Layer for Insurance Eligibility Verification.

Subpackages:
- edi: X12 270/271 codec, coverage extraction, error classification
- eligibility: payer adapters, transports, adapter factory
"""
