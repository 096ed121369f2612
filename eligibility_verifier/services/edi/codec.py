"""
X12 Codec facade for the 270/271 pair.

Combines the 270 generator, the serializer and the 271 parser behind one
object so adapters only depend on ``encode``, ``serialize`` and ``decode``.
"""

from datetime import datetime
from typing import Optional, Union

from eligibility_verifier.services.edi.x12_270_generator import (
    RESERVED_CHARACTERS,
    EligibilityInquiry,
    X12270Generator,
)
from eligibility_verifier.services.edi.x12_271_parser import X12271Parser
from eligibility_verifier.services.edi.x12_base import X12Tokenizer, X12Transaction


class X12Codec:
    """Encode inquiries to 270 transactions and decode raw 271 payloads."""

    def __init__(
        self,
        element_separator: str = X12Tokenizer.DEFAULT_ELEMENT_SEPARATOR,
        segment_terminator: str = X12Tokenizer.DEFAULT_SEGMENT_TERMINATOR,
    ):
        self.element_separator = element_separator
        self.segment_terminator = segment_terminator
        self.generator = X12270Generator(
            reserved_characters=RESERVED_CHARACTERS + element_separator + segment_terminator
        )

    def encode(
        self, inquiry: EligibilityInquiry, now: Optional[datetime] = None
    ) -> X12Transaction:
        return self.generator.generate(inquiry, now=now)

    def serialize(self, transaction: X12Transaction) -> str:
        """Join segments with element and segment delimiters."""
        return "".join(
            segment.to_string(self.element_separator) + self.segment_terminator
            for segment in transaction.segments
        )

    def decode(self, raw: Union[str, bytes]) -> X12Transaction:
        """
        Decode a raw payload.

        A fresh tokenizer is used per call so delimiters detected from one
        ISA envelope never leak into the next payload.

        Raises:
            X12ParseError: If the payload is empty or malformed
        """
        tokenizer = X12Tokenizer(
            element_separator=self.element_separator,
            segment_terminator=self.segment_terminator,
        )
        return X12271Parser(tokenizer).parse(raw)
