"""Syntax fixing and formatting."""

from querylens.fixer.enhancer import Enhancer, enhance, format_sql, validate
from querylens.fixer.fixer import SyntaxFixer, check_structure, fix
from querylens.fixer.models import EnhanceResult, FixIssue, FixResult, FixSeverity
from querylens.fixer.patterns import COMMON_PATTERNS, PLATFORM_PATTERNS, FixPattern

__all__ = [
    "COMMON_PATTERNS",
    "PLATFORM_PATTERNS",
    "EnhanceResult",
    "Enhancer",
    "FixIssue",
    "FixPattern",
    "FixResult",
    "FixSeverity",
    "SyntaxFixer",
    "check_structure",
    "enhance",
    "fix",
    "format_sql",
    "validate",
]
