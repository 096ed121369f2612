"""
X12 EDI Base Tokenizer and Models.

Provides the shared pieces of the 270/271 codec:
- Segment and transaction data models
- Tokenizer with ISA delimiter auto-detection
- Date and amount helpers
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Iterator, List, Optional, Tuple, Union
import logging

logger = logging.getLogger(__name__)


# =============================================================================
# Enums
# =============================================================================


class TransactionType(str, Enum):
    """X12 transaction set types handled by the codec."""

    ELIG_270 = "270"  # Eligibility Request
    ELIG_271 = "271"  # Eligibility Response


class SegmentID(str, Enum):
    """X12 segment identifiers used by the 270/271 pair."""

    # Envelope
    ISA = "ISA"  # Interchange Control Header
    IEA = "IEA"  # Interchange Control Trailer
    GS = "GS"  # Functional Group Header
    GE = "GE"  # Functional Group Trailer
    ST = "ST"  # Transaction Set Header
    SE = "SE"  # Transaction Set Trailer

    BHT = "BHT"  # Beginning of Hierarchical Transaction
    HL = "HL"  # Hierarchical Level
    TRN = "TRN"  # Trace Number

    NM1 = "NM1"  # Individual or Organizational Name
    REF = "REF"  # Reference Information
    DMG = "DMG"  # Demographic Information
    DTP = "DTP"  # Date/Time Period

    EQ = "EQ"  # Eligibility or Benefit Inquiry
    EB = "EB"  # Eligibility or Benefit Information
    AAA = "AAA"  # Request Validation
    MSG = "MSG"  # Message Text


# =============================================================================
# Exceptions
# =============================================================================


class X12ValidationError(Exception):
    """X12 validation error with detailed context."""

    def __init__(
        self,
        message: str,
        segment_id: Optional[str] = None,
        segment_position: Optional[int] = None,
        element_position: Optional[int] = None,
    ):
        self.message = message
        self.segment_id = segment_id
        self.segment_position = segment_position
        self.element_position = element_position
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        parts = [self.message]
        if self.segment_id:
            parts.append(f"Segment: {self.segment_id}")
        if self.segment_position is not None:
            parts.append(f"Position: {self.segment_position}")
        if self.element_position is not None:
            parts.append(f"Element: {self.element_position}")
        return " | ".join(parts)


class X12ParseError(X12ValidationError):
    """Error during X12 parsing."""

    pass


# =============================================================================
# Data Models
# =============================================================================


@dataclass
class X12Segment:
    """
    Represents a single X12 segment.

    Example: NM1*IL*1*DOE*JOHN****MI*12345~
    - segment_id: NM1
    - elements: ['IL', '1', 'DOE', 'JOHN', '', '', '', 'MI', '12345']

    ``position`` is informational and excluded from equality so decoded
    segments compare equal to the ones that were encoded.
    """

    segment_id: str
    elements: List[str] = field(default_factory=list)
    position: int = field(default=0, compare=False)

    def get_element(self, index: int, default: str = "") -> str:
        """Get element at index (0-based after segment ID)."""
        if 0 <= index < len(self.elements):
            return self.elements[index]
        return default

    def get_composite(self, index: int, separator: str = ":") -> List[str]:
        """Get composite element as list of sub-elements."""
        value = self.get_element(index)
        if value:
            return value.split(separator)
        return []

    def get_repetitions(self, index: int, separator: str = "^") -> List[str]:
        """Get a repeated element as its list of non-empty values."""
        value = self.get_element(index)
        return [part for part in value.split(separator) if part] if value else []

    def to_string(self, element_separator: str = "*") -> str:
        """Render the segment without its terminator."""
        return element_separator.join([self.segment_id, *self.elements])

    def __str__(self) -> str:
        return self.to_string()


@dataclass
class X12Transaction:
    """
    One X12 transaction set.

    Holds the ordered segments plus the control number (ST02) and the
    trace identifier carried in BHT03. The separators record what the
    payload was decoded with so composite and repeated elements can be
    split later.
    """

    segments: List[X12Segment] = field(default_factory=list)
    control_number: str = ""
    trace_id: str = ""
    component_separator: str = field(default=":", compare=False)
    repetition_separator: str = field(default="^", compare=False)

    @property
    def transaction_type(self) -> Optional[TransactionType]:
        st = self.find_segment(SegmentID.ST.value)
        if st is None:
            return None
        try:
            return TransactionType(st.get_element(0))
        except ValueError:
            return None

    def find_segment(self, segment_id: str) -> Optional[X12Segment]:
        """Find first segment with given ID."""
        for segment in self.segments:
            if segment.segment_id == segment_id:
                return segment
        return None

    def find_segments(self, segment_id: str) -> List[X12Segment]:
        """Find all segments with given ID."""
        return [s for s in self.segments if s.segment_id == segment_id]

    def __iter__(self) -> Iterator[X12Segment]:
        return iter(self.segments)

    def __len__(self) -> int:
        return len(self.segments)


# =============================================================================
# Tokenizer
# =============================================================================


class X12Tokenizer:
    """
    X12 EDI tokenizer.

    Splits raw X12 content into segments and elements. When the payload
    starts with an ISA envelope the delimiters are read from it.
    """

    DEFAULT_ELEMENT_SEPARATOR = "*"
    DEFAULT_SEGMENT_TERMINATOR = "~"
    DEFAULT_COMPONENT_SEPARATOR = ":"
    DEFAULT_REPETITION_SEPARATOR = "^"

    # ISA is fixed width; the segment terminator follows ISA16
    ISA_LENGTH = 106

    def __init__(
        self,
        element_separator: Optional[str] = None,
        segment_terminator: Optional[str] = None,
        component_separator: Optional[str] = None,
        repetition_separator: Optional[str] = None,
    ):
        self.element_separator = element_separator or self.DEFAULT_ELEMENT_SEPARATOR
        self.segment_terminator = segment_terminator or self.DEFAULT_SEGMENT_TERMINATOR
        self.component_separator = component_separator or self.DEFAULT_COMPONENT_SEPARATOR
        self.repetition_separator = repetition_separator or self.DEFAULT_REPETITION_SEPARATOR

    def detect_delimiters(self, content: str) -> Tuple[str, str, str, str]:
        """
        Detect delimiters from ISA segment.

        ISA is always 106 characters with fixed positions:
        - Element separator: position 3
        - Component separator: position 104
        - Segment terminator: position 105
        """
        if not content.startswith("ISA"):
            raise X12ParseError("Content must start with ISA segment")

        if len(content) < self.ISA_LENGTH:
            raise X12ParseError(
                f"ISA segment must be at least {self.ISA_LENGTH} characters",
                segment_id="ISA",
            )

        element_sep = content[3]
        component_sep = content[104]
        segment_term = content[105]

        # Repetition separator is ISA11
        isa_elements = content[:105].split(element_sep)
        if len(isa_elements) >= 12 and len(isa_elements[11]) == 1:
            rep_sep = isa_elements[11]
        else:
            rep_sep = self.DEFAULT_REPETITION_SEPARATOR

        return element_sep, segment_term, component_sep, rep_sep

    def tokenize(self, content: Union[str, bytes]) -> List[X12Segment]:
        """
        Tokenize X12 content into segments.

        Args:
            content: Raw X12 EDI content

        Returns:
            List of X12Segment objects

        Raises:
            X12ParseError: If the content is empty or cannot be decoded
        """
        if isinstance(content, bytes):
            try:
                content = content.decode("utf-8")
            except UnicodeDecodeError as e:
                raise X12ParseError(f"X12 payload is not valid UTF-8: {e}") from e

        if content is None or not content.strip():
            raise X12ParseError("Empty X12 payload")

        content = content.strip()

        if content.startswith("ISA"):
            (
                self.element_separator,
                self.segment_terminator,
                self.component_separator,
                self.repetition_separator,
            ) = self.detect_delimiters(content)

        segments = []
        for position, raw in enumerate(content.split(self.segment_terminator)):
            raw = raw.replace("\n", "").replace("\r", "").strip()
            if not raw:
                continue

            elements = raw.split(self.element_separator)
            if not elements[0]:
                raise X12ParseError(
                    "Segment is missing its identifier", segment_position=position
                )

            segments.append(
                X12Segment(segment_id=elements[0], elements=elements[1:], position=position)
            )

        if not segments:
            raise X12ParseError("No segments found in X12 payload")

        return segments


# =============================================================================
# Utility Functions
# =============================================================================


def parse_x12_date(date_str: str) -> Optional[date]:
    """
    Parse X12 date format (CCYYMMDD).

    Args:
        date_str: Date string in X12 format

    Returns:
        Python date object or None when the value is malformed
    """
    if not date_str or len(date_str) != 8:
        return None

    try:
        return datetime.strptime(date_str, "%Y%m%d").date()
    except ValueError:
        return None


def parse_dtp_date(format_code: str, value: str) -> Optional[date]:
    """Parse a DTP03 value; D8 is a single date, RD8 yields the range start."""
    if format_code == "D8":
        return parse_x12_date(value)
    if format_code == "RD8":
        return parse_x12_date(value.split("-", 1)[0])
    return None


def format_x12_date(d: date) -> str:
    """Format date as X12 CCYYMMDD."""
    return d.strftime("%Y%m%d")


def format_x12_time(t: datetime) -> str:
    """Format time as X12 HHMM."""
    return t.strftime("%H%M")


def parse_x12_amount(amount_str: str) -> Optional[Decimal]:
    """Parse X12 monetary amount, returning None when absent or malformed."""
    if not amount_str:
        return None
    try:
        return Decimal(amount_str)
    except InvalidOperation:
        return None


def validate_npi(npi: str) -> bool:
    """
    Validate NPI using Luhn algorithm.

    NPI is a 10-digit identifier for healthcare providers.
    """
    if not npi or len(npi) != 10 or not npi.isdigit():
        return False

    # Luhn with the healthcare prefix 80840
    full_number = "80840" + npi

    total = 0
    for i, digit in enumerate(reversed(full_number)):
        d = int(digit)
        if i % 2 == 0:
            total += d
        else:
            doubled = d * 2
            total += doubled if doubled < 10 else doubled - 9

    return total % 10 == 0
