"""Password strength scoring.

Score table (max 100):
    +20 length >= 8       +10 length >= 12
    +15 uppercase         +15 lowercase
    +15 digits            +20 special characters
    +5  no common pattern

Crack time assumes an attacker trying 1e9 guesses per second who finds
the password after searching half of the keyspace.
"""
import re
from typing import List, Optional

from pydantic import BaseModel

SPECIAL_CHARS = re.compile(r"[!@#$%^&*()_+\-=\[\]{};':\"\\|,.<>/?]")
UPPERCASE = re.compile(r"[A-Z]")
LOWERCASE = re.compile(r"[a-z]")
DIGITS = re.compile(r"[0-9]")

COMMON_PATTERNS = [
    re.compile(r"123456"),
    re.compile(r"password", re.IGNORECASE),
    re.compile(r"qwerty", re.IGNORECASE),
    re.compile(r"abc123", re.IGNORECASE),
    re.compile(r"admin", re.IGNORECASE),
    re.compile(r"welcome", re.IGNORECASE),
]

GUESSES_PER_SECOND = 1_000_000_000

# (upper bound in seconds, unit length in seconds, label)
_TIME_UNITS = [
    (3600, 60, "minutes"),
    (86400, 3600, "hours"),
    (2592000, 86400, "days"),
    (31536000, 2592000, "months"),
]
_YEAR = 31536000

STRENGTH_LABELS = [
    (85, "Very Strong"),
    (70, "Strong"),
    (50, "Moderate"),
    (30, "Weak"),
]


class PasswordDetails(BaseModel):
    length: int
    hasUppercase: bool
    hasLowercase: bool
    hasNumbers: bool
    hasSpecialChars: bool
    hasCommonPatterns: bool
    estimatedCrackTime: str


class PasswordAnalysis(BaseModel):
    score: int
    strength: str
    feedback: List[str]
    details: PasswordDetails


def has_common_pattern(password: str) -> bool:
    return any(pattern.search(password) for pattern in COMMON_PATTERNS)


def charset_size(password: str) -> int:
    size = 0
    if LOWERCASE.search(password):
        size += 26
    if UPPERCASE.search(password):
        size += 26
    if DIGITS.search(password):
        size += 10
    if SPECIAL_CHARS.search(password):
        size += 32
    return size


def _ceil_div(numerator: int, denominator: int) -> int:
    return -(-numerator // denominator)


def estimate_crack_time(password: str) -> str:
    """Human-readable time to brute-force ``password``.

    Uses exact integer arithmetic so long passwords never overflow a float.
    """
    combinations = charset_size(password) ** len(password)
    # seconds = combinations / (2 * GUESSES_PER_SECOND)
    divisor = 2 * GUESSES_PER_SECOND

    if combinations < 60 * divisor:
        return "Less than a minute"
    for bound, unit, label in _TIME_UNITS:
        if combinations < bound * divisor:
            return f"{_ceil_div(combinations, unit * divisor)} {label}"
    return f"{_ceil_div(combinations, _YEAR * divisor)} years"


def strength_label(score: int) -> str:
    for threshold, label in STRENGTH_LABELS:
        if score >= threshold:
            return label
    return "Very Weak"


def _feedback(details: PasswordDetails) -> List[str]:
    feedback = []
    if details.length < 8:
        feedback.append("Use at least 8 characters")
    if not details.hasUppercase:
        feedback.append("Add uppercase letters (A-Z)")
    if not details.hasLowercase:
        feedback.append("Add lowercase letters (a-z)")
    if not details.hasNumbers:
        feedback.append("Add numbers (0-9)")
    if not details.hasSpecialChars:
        feedback.append("Add special characters (!@#$%^&*)")
    if details.hasCommonPatterns:
        feedback.append("Avoid common patterns and dictionary words")
    if details.length < 12:
        feedback.append("Consider using 12+ characters for better security")
    return feedback


def analyze_password(password: Optional[str]) -> Optional[PasswordAnalysis]:
    """Score a password. Returns None for an empty or missing password."""
    if not password:
        return None

    details = PasswordDetails(
        length=len(password),
        hasUppercase=bool(UPPERCASE.search(password)),
        hasLowercase=bool(LOWERCASE.search(password)),
        hasNumbers=bool(DIGITS.search(password)),
        hasSpecialChars=bool(SPECIAL_CHARS.search(password)),
        hasCommonPatterns=has_common_pattern(password),
        estimatedCrackTime=estimate_crack_time(password),
    )

    score = 0
    if details.length >= 8:
        score += 20
    if details.length >= 12:
        score += 10
    if details.hasUppercase:
        score += 15
    if details.hasLowercase:
        score += 15
    if details.hasNumbers:
        score += 15
    if details.hasSpecialChars:
        score += 20
    if not details.hasCommonPatterns:
        score += 5

    return PasswordAnalysis(
        score=score,
        strength=strength_label(score),
        feedback=_feedback(details),
        details=details,
    )
