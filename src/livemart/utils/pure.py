import uuid
from datetime import datetime
from typing import Callable, Dict, Hashable, Iterable, List, Literal, Optional, TypeVar

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)

_hasher = PasswordHasher()


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [list(map(str, row)) for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(map(str, row)) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def group_stable(items: Iterable[T], key: Callable[[T], K]) -> Dict[K, List[T]]:
    """
    Partition items by key. Groups come out in order of first appearance and
    each group keeps the relative order of its items.
    """
    groups: Dict[K, List[T]] = {}
    for item in items:
        groups.setdefault(key(item), []).append(item)
    return groups


def money(amount: float) -> float:
    return round(amount, 2)


def format_money(amount: float) -> str:
    return f"${amount:,.2f}"


def new_record_id(prefix: str) -> str:
    """e.g. ORD-1A2B3C4D"""
    return f"{prefix}-{uuid.uuid4().hex[:8].upper()}"


def to_ts(when: datetime) -> str:
    return when.isoformat(timespec="seconds")


def from_ts(raw: str) -> datetime:
    return datetime.fromisoformat(raw)


def hash_password(pwd: str) -> str:
    """Argon2id hash in PHC form, e.g. $argon2id$v=19$m=65536,t=3,p=4$..."""
    return _hasher.hash(pwd)


def verify_password(pwd: str, stored: str) -> bool:
    try:
        return _hasher.verify(stored, pwd)
    except (VerificationError, InvalidHash):
        return False
