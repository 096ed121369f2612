"""
Insurance eligibility verification for family onboarding.

X12 270/271 codec, payer adapters, and the verification status workflow.
"""

__version__ = "0.1.0"
