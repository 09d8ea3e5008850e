"""
Error taxonomy for document production.

Every compile-time failure aborts production of the document for that
request. Errors carry the structural context needed to diagnose them
(symbol, class label, family) as attributes, not only in the message.

    ScoredocError
    ├── TranslationError
    │   ├── UnsupportedConstruct
    │   └── UnboundSymbol
    ├── IncompatibleModel
    ├── MissingCutoff
    ├── UnsupportedModelVariant
    ├── AssemblyError
    │   ├── SchemaMismatch
    │   ├── UnresolvedReference
    │   └── DuplicateCell
    ├── ValidationFailed
    ├── EvaluationError
    └── ConfigError
"""

from typing import Optional


class ScoredocError(Exception):
    """Base class for all errors raised by scoredoc."""
    pass


class TranslationError(ScoredocError):
    """Raised by the expression translator."""
    pass


class UnsupportedConstruct(TranslationError):
    """A host expression uses a form with no document-level equivalent."""

    def __init__(self, construct: str, detail: Optional[str] = None):
        self.construct = construct
        self.detail = detail
        msg = f"Unsupported construct: {construct}"
        if detail:
            msg += f" ({detail})"
        super().__init__(msg)


class UnboundSymbol(TranslationError):
    """A free variable is neither a declared input field nor a bound symbol."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Unbound symbol: {symbol!r}")


class IncompatibleModel(ScoredocError):
    """The fitted object lacks the structure a family extractor expects."""

    def __init__(self, family: str, reason: str):
        self.family = family
        self.reason = reason
        super().__init__(f"Incompatible {family} model: {reason}")


class MissingCutoff(ScoredocError):
    """A class label has no usable cutoff (absent, non-positive or unknown)."""

    def __init__(self, label: str, reason: str = "no cutoff supplied"):
        self.label = label
        self.reason = reason
        super().__init__(f"Cutoff for class {label!r}: {reason}")


class UnsupportedModelVariant(ScoredocError):
    """The family / link / task combination cannot be compiled."""

    def __init__(self, family: str, link: Optional[str] = None,
                 task: Optional[str] = None, reason: Optional[str] = None):
        self.family = family
        self.link = link
        self.task = task
        self.reason = reason
        parts = [f"family={family}"]
        if link:
            parts.append(f"link={link}")
        if task:
            parts.append(f"task={task}")
        msg = f"Unsupported model variant ({', '.join(parts)})"
        if reason:
            msg += f": {reason}"
        super().__init__(msg)


class AssemblyError(ScoredocError):
    """Raised when a document fails its structural checks."""
    pass


class SchemaMismatch(AssemblyError):
    """Inferred and declared types disagree, or a type descriptor is malformed."""

    def __init__(self, message: str, expected=None, actual=None):
        self.expected = expected
        self.actual = actual
        super().__init__(message)


class UnresolvedReference(AssemblyError):
    """A Ref (or operator name) does not resolve in its lexical scope."""

    def __init__(self, symbol: str, kind: str = "symbol"):
        self.symbol = symbol
        self.kind = kind
        super().__init__(f"Unresolved {kind}: {symbol!r}")


class DuplicateCell(AssemblyError):
    """Two cells share a name, or a cell shadows an input field."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Duplicate cell name: {name!r}")


class ValidationFailed(ScoredocError):
    """The validation engine rejected a document (fatal only in error mode)."""

    def __init__(self, diagnostic: str):
        self.diagnostic = diagnostic
        super().__init__(f"Validation failed: {diagnostic}")


class EvaluationError(ScoredocError):
    """The local engine could not execute a document."""
    pass


class ConfigError(ScoredocError):
    """Invalid producer configuration."""
    pass
