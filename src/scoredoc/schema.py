"""
Type Descriptors

Schema nodes used for a document's input, output, cells and literals.

These are plain immutable data. The only logic here is what the
assembler needs to compare an inferred type against a declared one:
    - numeric promotion for operator result types
    - structural compatibility

INVARIANTS (checked at construction, SchemaMismatch on violation):
    - Enum symbols are unique
    - Record field names are unique
    - Union alternatives are pairwise distinct
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .errors import SchemaMismatch


PRIMITIVE_KINDS = ("null", "boolean", "int", "long", "float", "double", "string")

# Widening order for numeric operator results
NUMERIC_RANK = {"int": 0, "long": 1, "float": 2, "double": 3}


class TypeDescriptor:
    """
    Base class for all schema nodes.

    Structure only. Rendering to text belongs in serialization.
    """
    pass


@dataclass(frozen=True)
class Primitive(TypeDescriptor):
    """
    A primitive type.

    Properties:
        kind: one of null, boolean, int, long, float, double, string
    """

    kind: str

    def __post_init__(self):
        if self.kind not in PRIMITIVE_KINDS:
            raise SchemaMismatch(f"Unknown primitive kind: {self.kind!r}")


@dataclass(frozen=True)
class Record(TypeDescriptor):
    """
    A named record with ordered fields.

    Properties:
        name: record type name (e.g., "Input")
        fields: ordered (field name, TypeDescriptor) pairs
    """

    name: str
    fields: Tuple[Tuple[str, TypeDescriptor], ...] = ()

    def __post_init__(self):
        fields = tuple((str(n), t) for n, t in self.fields)
        names = [n for n, _ in fields]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise SchemaMismatch(f"Record {self.name!r} has duplicate fields: {', '.join(dupes)}")
        object.__setattr__(self, "fields", fields)

    @property
    def field_names(self) -> Tuple[str, ...]:
        return tuple(n for n, _ in self.fields)

    def field_type(self, name: str) -> Optional[TypeDescriptor]:
        for field_name, field_type in self.fields:
            if field_name == name:
                return field_type
        return None


@dataclass(frozen=True)
class Enum(TypeDescriptor):
    """A named enumeration with ordered, unique symbols."""

    name: str
    symbols: Tuple[str, ...] = ()

    def __post_init__(self):
        symbols = tuple(self.symbols)
        if len(set(symbols)) != len(symbols):
            raise SchemaMismatch(f"Enum {self.name!r} has duplicate symbols")
        object.__setattr__(self, "symbols", symbols)


@dataclass(frozen=True)
class Array(TypeDescriptor):
    """Homogeneous array."""

    items: TypeDescriptor


@dataclass(frozen=True)
class Map(TypeDescriptor):
    """String-keyed map with homogeneous values."""

    values: TypeDescriptor


@dataclass(frozen=True)
class Union(TypeDescriptor):
    """Ordered union of pairwise distinct alternatives."""

    types: Tuple[TypeDescriptor, ...] = ()

    def __post_init__(self):
        types = tuple(self.types)
        if len(set(types)) != len(types):
            raise SchemaMismatch("Union alternatives must be pairwise distinct")
        if any(isinstance(t, Union) for t in types):
            raise SchemaMismatch("Union alternatives cannot be unions")
        object.__setattr__(self, "types", types)


NULL = Primitive("null")
BOOLEAN = Primitive("boolean")
INT = Primitive("int")
LONG = Primitive("long")
FLOAT = Primitive("float")
DOUBLE = Primitive("double")
STRING = Primitive("string")


def is_numeric(t: TypeDescriptor) -> bool:
    return isinstance(t, Primitive) and t.kind in NUMERIC_RANK


def promote(a: TypeDescriptor, b: TypeDescriptor) -> TypeDescriptor:
    """Return the wider of two numeric types."""
    if not (is_numeric(a) and is_numeric(b)):
        raise SchemaMismatch(f"Cannot promote non-numeric types {a} and {b}", expected="numeric")
    return a if NUMERIC_RANK[a.kind] >= NUMERIC_RANK[b.kind] else b


def unify(a: TypeDescriptor, b: TypeDescriptor) -> TypeDescriptor:
    """
    Common type of two branches (If then/else).

    Equal types unify to themselves, numeric types to the wider one,
    anything else to a union of both.
    """
    if a == b:
        return a
    if is_numeric(a) and is_numeric(b):
        return promote(a, b)
    alternatives = []
    for t in (a, b):
        for alt in (t.types if isinstance(t, Union) else (t,)):
            if alt not in alternatives:
                alternatives.append(alt)
    return Union(tuple(alternatives))


def compatible(inferred: TypeDescriptor, declared: TypeDescriptor) -> bool:
    """
    Structural compatibility of an inferred type with a declared one.

    Rules:
        - primitive to primitive: exact match
        - record to record: same field names in order, field-wise compatible
        - enum to enum: same symbols
        - array / map: element-wise
        - declared union: inferred type (or each of its alternatives)
          must be compatible with some alternative
    """
    if isinstance(declared, Union):
        candidates = inferred.types if isinstance(inferred, Union) else (inferred,)
        return all(any(compatible(c, alt) for alt in declared.types) for c in candidates)

    if isinstance(declared, Primitive):
        return inferred == declared

    if isinstance(declared, Record):
        if not isinstance(inferred, Record):
            return False
        if inferred.field_names != declared.field_names:
            return False
        return all(compatible(it, dt) for (_, it), (_, dt) in zip(inferred.fields, declared.fields))

    if isinstance(declared, Enum):
        return isinstance(inferred, Enum) and inferred.symbols == declared.symbols

    if isinstance(declared, Array):
        return isinstance(inferred, Array) and compatible(inferred.items, declared.items)

    if isinstance(declared, Map):
        return isinstance(inferred, Map) and compatible(inferred.values, declared.values)

    return False


def describe(t: TypeDescriptor) -> str:
    """Short human-readable rendering for diagnostics."""
    if isinstance(t, Primitive):
        return t.kind
    if isinstance(t, Record):
        inner = ", ".join(f"{n}: {describe(ft)}" for n, ft in t.fields)
        return f"record {t.name} {{{inner}}}"
    if isinstance(t, Enum):
        return f"enum {t.name} [{', '.join(t.symbols)}]"
    if isinstance(t, Array):
        return f"array<{describe(t.items)}>"
    if isinstance(t, Map):
        return f"map<{describe(t.values)}>"
    if isinstance(t, Union):
        return " | ".join(describe(alt) for alt in t.types)
    return "?"
