"""
Castable value kinds.

Every leaf stored in a ParameterTree is a Castable: a raw value tagged with the
CastableKind that owns it. Kinds know how to test castability from, and cast
from, any other kind. Casting is total - a value that cannot be represented in
the destination kind resolves to that kind's default value instead of raising.

Kinds:
    BOOL, INT, UINT, FLOAT (single precision), DOUBLE, STRING, ARRAY
    EnumKind - one instance per registered integer-valued Enum class

Dispatch is table based: each primitive kind holds a converter per source
category ("bool", "int", "uint", "float", "double", "string", "enum",
"array"). A missing entry means "not castable". A converter returning None
means the particular value is not representable (NaN to INT, -1 to UINT, ...).

Usage:
    >>> INT.cast_from(DOUBLE(2.5))
    Castable(kind=<CastableKind int>, value=2)
    >>> INT.cast_from("1000.5").value
    1000
    >>> UINT(-3)             # not representable, default returned
    Castable(kind=<CastableKind uint>, value=0)

    >>> @castable_enum(aliases=["none", "solid", "dashed"])
    ... class DrawMode(IntEnum):
    ...     NONE = 0
    ...     SOLID = 1
    ...     DASHED = 2
    >>> get_enum_kind(DrawMode).cast_from("dashed").value
    <DrawMode.DASHED: 2>
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Sequence, Type, Union
import logging
import math
import struct

logger = logging.getLogger(__name__)

# Converter returns the raw destination value, or None when not representable
Converter = Callable[[Any], Any]

_TRUE_STRINGS = ("true", "1")
_FALSE_STRINGS = ("false", "0")


# =============================================================================
# NUMERIC HELPERS
# =============================================================================

def _parse_number(text: str) -> Optional[float]:
    """Parse a string as a double, None if it is not a number."""
    try:
        return float(text)
    except ValueError:
        return None


def _parse_finite(text: str) -> Optional[float]:
    """Parse a string as a finite double, None for non-numbers, NaN and infinities."""
    number = _parse_number(text)
    if number is None or not math.isfinite(number):
        return None
    return number


def _int_text(value: int) -> Optional[str]:
    """Decimal text of an integer, None past the interpreter's digit limit."""
    try:
        return str(value)
    except ValueError:
        return None


def _truncate(value: Any) -> Optional[int]:
    """Truncate toward zero. None for NaN and infinities."""
    if isinstance(value, int):
        return int(value)
    if not math.isfinite(value):
        return None
    return int(value)


def _unsigned(value: Any) -> Optional[int]:
    result = _truncate(value)
    if result is None or result < 0:
        return None
    return result


def _to_double(value: Any) -> Optional[float]:
    try:
        return float(value)
    except OverflowError:
        return None


def _to_float32(value: Any) -> Optional[float]:
    """Round a number to single precision. None if outside its range."""
    double = _to_double(value)
    if double is None:
        return None
    try:
        return struct.unpack('f', struct.pack('f', double))[0]
    except OverflowError:
        return None


def float32_repr(value: float) -> str:
    """Shortest decimal text that reads back as the same single-precision value."""
    if not math.isfinite(value):
        return repr(value)
    for precision in range(1, 10):
        text = f"{value:.{precision}g}"
        if _to_float32(float(text)) == value:
            return repr(float(text))
    return repr(value)


def _parse_bool(text: str) -> Optional[bool]:
    lowered = text.lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    return None


def _compose(first: Converter, second: Converter) -> Converter:
    def converter(raw: Any) -> Any:
        intermediate = first(raw)
        return None if intermediate is None else second(intermediate)
    return converter


def _identity(raw: Any) -> Any:
    return raw


# =============================================================================
# KIND BASE CLASS
# =============================================================================

class CastableKind(ABC):
    """One value category: a default, a castability test and a total cast."""

    name: str
    # Dispatch key seen by other kinds' converter tables
    category: str

    @property
    @abstractmethod
    def default(self) -> 'Castable':
        """Value returned when a cast is not possible."""

    @abstractmethod
    def _convert(self, value: 'Castable') -> Any:
        """Raw destination value for value, or None if not representable."""

    @abstractmethod
    def to_native(self, raw: Any) -> Any:
        """Plain Python form of a raw value of this kind."""

    @abstractmethod
    def to_json(self, raw: Any, enum_as_alias: bool = True) -> Any:
        """JSON-ready form of a raw value of this kind."""

    def is_castable_from(self, value: Any) -> bool:
        """Check whether value (Castable or native) can be cast to this kind."""
        source = _as_source(value)
        if source is None:
            return False
        return self._convert(source) is not None

    def cast_from(self, value: Any) -> 'Castable':
        """Cast value (Castable or native) to this kind, default on failure."""
        source = _as_source(value)
        if source is None:
            return self.default
        raw = self._convert(source)
        if raw is None:
            logger.debug(f"Cannot cast {source!r} to {self.name}, using default")
            return self.default
        return Castable(self, raw)

    def __call__(self, value: Any) -> 'Castable':
        """Build a Castable of this kind from any castable input."""
        return self.cast_from(value)

    # Kinds are singletons; tree copies must keep identity
    def __copy__(self) -> 'CastableKind':
        return self

    def __deepcopy__(self, memo: dict) -> 'CastableKind':
        return self

    def __repr__(self) -> str:
        return f"<CastableKind {self.name}>"


class PrimitiveKind(CastableKind):
    """Built-in kind driven by a converter table keyed by source category."""

    def __init__(self, name: str, default_raw: Any, native_type: type):
        self.name = name
        self.category = name
        self.native_type = native_type
        self._default_raw = default_raw
        self._converters: Dict[str, Converter] = {}

    @property
    def default(self) -> 'Castable':
        return Castable(self, self._default_raw)

    def register_converter(self, source_category: str, converter: Converter) -> None:
        """Declare this kind castable from source_category through converter."""
        self._converters[source_category] = converter

    def _convert(self, value: 'Castable') -> Any:
        converter = self._converters.get(value.kind.category)
        if converter is None:
            return None
        raw = value.value
        if value.kind.category == "enum":
            raw = value.kind.enum_to_source(raw, self)
            if raw is None:
                return None
        return converter(raw)

    def to_native(self, raw: Any) -> Any:
        if self is ARRAY:
            return [element.native() for element in raw]
        return raw

    def to_json(self, raw: Any, enum_as_alias: bool = True) -> Any:
        if self is FLOAT and math.isfinite(raw):
            # Keep "3.8" readable instead of the widened double 3.799999952316284
            return float(float32_repr(raw))
        if self is ARRAY:
            return [element.kind.to_json(element.value, enum_as_alias) for element in raw]
        return raw


BOOL = PrimitiveKind("bool", False, bool)
INT = PrimitiveKind("int", 0, int)
UINT = PrimitiveKind("uint", 0, int)
FLOAT = PrimitiveKind("float", 0.0, float)
DOUBLE = PrimitiveKind("double", 0.0, float)
STRING = PrimitiveKind("string", "", str)
ARRAY = PrimitiveKind("array", (), list)

PRIMITIVE_KINDS: List[PrimitiveKind] = [BOOL, INT, UINT, FLOAT, DOUBLE, STRING, ARRAY]


# BOOL: not castable from floating point, arrays or enums
BOOL.register_converter("bool", _identity)
BOOL.register_converter("int", lambda raw: raw != 0)
BOOL.register_converter("uint", lambda raw: raw != 0)
BOOL.register_converter("string", _parse_bool)

# INT / UINT: strings parse as double first so "1000.5" narrows to 1000
INT.register_converter("bool", int)
UINT.register_converter("bool", int)
for _category in ("int", "uint", "float", "double", "enum"):
    INT.register_converter(_category, _truncate)
    UINT.register_converter(_category, _unsigned)
INT.register_converter("string", _compose(_parse_number, _truncate))
UINT.register_converter("string", _compose(_parse_number, _unsigned))

# FLOAT / DOUBLE: strings must parse to a finite number so the value stays JSON encodable
for _category in ("int", "uint", "float", "double", "enum"):
    DOUBLE.register_converter(_category, _to_double)
    FLOAT.register_converter(_category, _to_float32)
DOUBLE.register_converter("string", _parse_finite)
FLOAT.register_converter("string", _compose(_parse_finite, _to_float32))

# STRING accepts every kind except arrays
STRING.register_converter("string", _identity)
STRING.register_converter("bool", lambda raw: "true" if raw else "false")
STRING.register_converter("int", _int_text)
STRING.register_converter("uint", _int_text)
STRING.register_converter("double", repr)
STRING.register_converter("float", float32_repr)
STRING.register_converter("enum", _identity)

ARRAY.register_converter("array", _identity)


# =============================================================================
# ENUM KINDS
# =============================================================================

class EnumKind(CastableKind):
    """Castable kind backed by an Enum class with integer values.

    Accepts the enum itself, any numeric value whose truncated code is a
    member value, and any string listed in aliases.
    """

    category = "enum"

    def __init__(self, enum_cls: Type[Enum], aliases: Optional[Sequence[str]] = None,
                 default: Optional[Enum] = None):
        members = list(enum_cls)
        if not members:
            raise ValueError(f"{enum_cls.__name__} has no members")
        for member in members:
            if isinstance(member.value, bool) or not isinstance(member.value, int):
                raise TypeError(
                    f"{enum_cls.__name__}.{member.name} must have an integer value, got {member.value!r}"
                )
        aliases = list(aliases or [])
        if aliases and len(aliases) != len(members):
            raise ValueError(
                f"{enum_cls.__name__} declares {len(members)} members but {len(aliases)} aliases"
            )
        if default is not None and default not in members:
            raise ValueError(f"Default {default!r} is not a member of {enum_cls.__name__}")

        self.enum_cls = enum_cls
        self.name = enum_cls.__name__
        self.valid_codes: List[int] = [member.value for member in members]
        self.aliases: List[str] = aliases
        self._default_member = default if default is not None else members[0]

    @property
    def default(self) -> 'Castable':
        return Castable(self, self._default_member)

    def member_for_code(self, code: Optional[int]) -> Optional[Enum]:
        if code is None or code not in self.valid_codes:
            return None
        return self.enum_cls(code)

    def alias_for(self, member: Enum) -> Optional[str]:
        if not self.aliases:
            return None
        return self.aliases[self.valid_codes.index(member.value)]

    def enum_to_source(self, member: Enum, destination: CastableKind) -> Any:
        """Raw value a primitive destination kind converts from."""
        if destination is STRING:
            alias = self.alias_for(member)
            return alias if alias is not None else str(member.value)
        return member.value

    def _convert(self, value: 'Castable') -> Any:
        kind = value.kind
        if kind is self:
            return value.value
        if kind.category in ("int", "uint", "float", "double"):
            return self.member_for_code(_truncate(value.value))
        if kind is STRING and value.value in self.aliases:
            return self.enum_cls(self.valid_codes[self.aliases.index(value.value)])
        return None

    def to_native(self, raw: Any) -> Any:
        return raw

    def to_json(self, raw: Any, enum_as_alias: bool = True) -> Any:
        alias = self.alias_for(raw)
        if enum_as_alias and alias is not None:
            return alias
        return raw.value


# Registry of enum class -> kind, so natives can be wrapped without annotations
_enum_kind_registry: Dict[Type[Enum], EnumKind] = {}


def register_enum_kind(enum_cls: Type[Enum], aliases: Optional[Sequence[str]] = None,
                       default: Optional[Enum] = None) -> EnumKind:
    """Register an Enum class as a castable kind.

    Args:
        enum_cls: Enum (usually IntEnum) whose member values are integers
        aliases: Optional readable names, one per member, used for JSON
        default: Member returned for uncastable input (first member if omitted)

    Returns:
        The EnumKind for enum_cls. Re-registering replaces the previous kind.
    """
    kind = EnumKind(enum_cls, aliases=aliases, default=default)
    if enum_cls in _enum_kind_registry:
        logger.debug(f"Replacing enum kind registration for {enum_cls.__name__}")
    _enum_kind_registry[enum_cls] = kind
    return kind


def castable_enum(enum_cls: Optional[Type[Enum]] = None, *,
                  aliases: Optional[Sequence[str]] = None,
                  default: Optional[Enum] = None):
    """Class decorator registering an Enum as a castable kind.

    Works bare (@castable_enum) or with options
    (@castable_enum(aliases=["none", "solid", "dashed"])).
    """
    def decorator(cls: Type[Enum]) -> Type[Enum]:
        register_enum_kind(cls, aliases=aliases, default=default)
        return cls

    if enum_cls is not None:
        return decorator(enum_cls)
    return decorator


def get_enum_kind(enum_cls: Type[Enum]) -> Optional[EnumKind]:
    """Get the registered kind for an Enum class, None if not registered."""
    return _enum_kind_registry.get(enum_cls)


def unregister_enum_kind(enum_cls: Type[Enum]) -> None:
    _enum_kind_registry.pop(enum_cls, None)


# =============================================================================
# TAGGED VALUE
# =============================================================================

@dataclass(frozen=True)
class Castable:
    """A raw value tagged with its kind.

    Equality is exact: kinds must be identical and raw values equal, so
    INT 1, DOUBLE 1.0 and BOOL True are three different values.
    """
    kind: CastableKind
    value: Any

    def __eq__(self, other: Any) -> bool:
        if not isinstance(other, Castable):
            return NotImplemented
        if self.kind is not other.kind:
            return False
        # bool is an int subclass; keep True distinct from 1 inside arrays
        return type(self.value) is type(other.value) and self.value == other.value

    def __hash__(self) -> int:
        return hash((id(self.kind), self.value))

    def __copy__(self) -> 'Castable':
        return self

    def __deepcopy__(self, memo: dict) -> 'Castable':
        return self

    def native(self) -> Any:
        """Plain Python form (int, float, str, bool, enum member or list)."""
        return self.kind.to_native(self.value)

    @classmethod
    def of(cls, raw: Any) -> Optional['Castable']:
        """Wrap a native Python value, None if it has no castable kind.

        bool -> BOOL, int -> INT, float -> DOUBLE, str -> STRING,
        registered Enum member -> its EnumKind, list/tuple -> ARRAY.
        UINT and FLOAT values are built explicitly: UINT(5), FLOAT(2.5).
        """
        if isinstance(raw, Castable):
            return raw
        if isinstance(raw, Enum):
            kind = _enum_kind_registry.get(type(raw))
            if kind is None:
                logger.debug(f"Enum {type(raw).__name__} is not registered as a castable kind")
                return None
            return cls(kind, raw)
        if isinstance(raw, bool):
            return cls(BOOL, raw)
        if isinstance(raw, int):
            return cls(INT, raw)
        if isinstance(raw, float):
            return cls(DOUBLE, raw)
        if isinstance(raw, str):
            return cls(STRING, raw)
        if isinstance(raw, (list, tuple)):
            elements = []
            for element in raw:
                if element is None:
                    continue
                wrapped = cls.of(element)
                if wrapped is None:
                    return None
                elements.append(wrapped)
            return cls(ARRAY, tuple(elements))
        return None


def _as_source(value: Any) -> Optional[Castable]:
    return value if isinstance(value, Castable) else Castable.of(value)


# =============================================================================
# KIND RESOLUTION AND COMPARISON
# =============================================================================

KindSpec = Union[CastableKind, type]

_PYTHON_TYPE_KINDS: Dict[type, CastableKind] = {
    bool: BOOL,
    int: INT,
    float: DOUBLE,
    str: STRING,
    list: ARRAY,
    tuple: ARRAY,
}


def resolve_kind(kind: KindSpec) -> CastableKind:
    """Resolve a destination kind from a CastableKind, Python type or Enum class.

    Raises:
        TypeError: if kind names nothing castable
    """
    if isinstance(kind, CastableKind):
        return kind
    if isinstance(kind, type):
        if kind in _PYTHON_TYPE_KINDS:
            return _PYTHON_TYPE_KINDS[kind]
        if issubclass(kind, Enum):
            enum_kind = _enum_kind_registry.get(kind)
            if enum_kind is not None:
                return enum_kind
            raise TypeError(
                f"Enum {kind.__name__} is not registered; decorate it with @castable_enum"
            )
    raise TypeError(f"{kind!r} is not a castable kind")


def compare(lhs: Any, rhs: Any) -> bool:
    """Compare two values after casting rhs to the kind of lhs.

    Use == on Castables for exact matching without casting.
    """
    left = _as_source(lhs)
    right = _as_source(rhs)
    if left is None or right is None:
        return False
    if not left.kind.is_castable_from(right):
        return False
    return left.kind.cast_from(right) == left
