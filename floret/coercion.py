"""
Floret value coercion: textual tokens to typed field values.

Kinds
- Kind.STRING            str, assigned verbatim
- Kind.SIGNED_INTEGER    int, radix sniffed from a 0x/0b/0o prefix (optionally signed)
- Kind.UNSIGNED_INTEGER  floret.unsigned, same radix rules, no '-' sign
- Kind.FLOAT             float, decimal/scientific/inf/nan spellings
- Kind.BOOLEAN           bool, 1/t/T/TRUE/true/True and 0/f/F/FALSE/false/False
- Kind.SEQUENCE          list[T], comma-separated, each element coerced as T

Indirection
- Annotated[...] wrappers and `| None` optionals are stripped before the kind is
  derived; assigning into an optional field simply stores the coerced value.

Errors
- CanNotParseError when the text is incompatible with the target kind.
- CanNotSetError when the destination refuses the assignment (assign() only).
"""
import math
import re
import types
import typing
from enum import StrEnum

from .arguments import unsigned
from .faults import CanNotParseError, CanNotSetError, UnsupportedTypeError

_TRUTHY = frozenset(("1", "t", "T", "TRUE", "true", "True"))
_FALSY = frozenset(("0", "f", "F", "FALSE", "false", "False"))

_RADIXES = {
    "x": (16, re.compile(r"[0-9a-fA-F]+")),
    "b": (2, re.compile(r"[01]+")),
    "o": (8, re.compile(r"[0-7]+")),
}
_PREFIXED = re.compile(r"(?P<sign>[+-]?)0(?P<radix>[xXbBoO])(?P<digits>.*)", re.DOTALL)
_DECIMAL = re.compile(r"(?P<sign>[+-]?)(?P<digits>[0-9]+)")
_FLOAT = re.compile(r"[^\s_]+")


class Kind(StrEnum):
    STRING = "string"
    SIGNED_INTEGER = "signed-integer"
    UNSIGNED_INTEGER = "unsigned-integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    SEQUENCE = "sequence"


def strip(annotation):
    """
    Remove Annotated wrappers and `| None` optionals from an annotation.

    Returns the innermost annotation; a union that still holds more than one
    non-None member is returned unchanged (and later rejected as unsupported).
    """
    while True:
        if typing.get_origin(annotation) is typing.Annotated:
            annotation = annotation.__origin__
            continue
        if typing.get_origin(annotation) in (typing.Union, types.UnionType):
            members = [member for member in typing.get_args(annotation) if member is not type(None)]
            if len(members) == 1:
                annotation = members[0]
                continue
        return annotation


def kindof(annotation):
    """
    Derive the Kind of an annotation after stripping indirection.

    Raises
    - UnsupportedTypeError: when the annotation maps to no kind.
    """
    annotation = strip(annotation)
    if annotation is bool:
        return Kind.BOOLEAN
    if annotation is unsigned:
        return Kind.UNSIGNED_INTEGER
    if annotation is str:
        return Kind.STRING
    if annotation is float:
        return Kind.FLOAT
    if isinstance(annotation, type) and issubclass(annotation, int) and not issubclass(annotation, bool):
        return Kind.SIGNED_INTEGER
    if annotation is list or typing.get_origin(annotation) is list:
        if kindof(element(annotation)) is Kind.SEQUENCE:
            raise UnsupportedTypeError(f"type not supported: {annotation!r} (nested sequence)", annotation=annotation)
        return Kind.SEQUENCE
    raise UnsupportedTypeError(f"type not supported: {annotation!r}", annotation=annotation)


def element(annotation):
    """
    Return the element annotation of a sequence annotation (str for a bare list).
    """
    arguments = typing.get_args(strip(annotation))
    return arguments[0] if arguments else str


def parse_bool(text, /):
    """
    Parse boolean text; raise CanNotParseError for anything outside the accepted set.
    """
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise CanNotParseError(f"can not parse {text!r} as {Kind.BOOLEAN}", text=text, kind=Kind.BOOLEAN)


def parse_int(text, /, *, signed=True):
    """
    Parse integer text with radix sniffing.

    rules
    - 0x/0X → 16, 0b/0B → 2, 0o/0O → 8, otherwise 10.
    - an optional '+' or '-' may precede the prefix (or the decimal digits).
    - digits are validated per radix: no underscores, no whitespace, no inner sign.
    - unsigned parsing rejects a '-' sign.
    """
    kind = Kind.SIGNED_INTEGER if signed else Kind.UNSIGNED_INTEGER
    fault = CanNotParseError(f"can not parse {text!r} as {kind}", text=text, kind=kind)

    if match := _PREFIXED.fullmatch(text):
        base, pattern = _RADIXES[match["radix"].lower()]
        if not pattern.fullmatch(match["digits"]):
            raise fault
        sign, value = match["sign"], int(match["digits"], base)
    elif match := _DECIMAL.fullmatch(text):
        sign, value = match["sign"], int(match["digits"], 10)
    else:
        raise fault

    if sign == "-":
        if not signed:
            raise fault
        value = -value
    return value


def parse_float(text, /):
    """
    Parse float text; whitespace and digit-group underscores are rejected.
    """
    fault = CanNotParseError(f"can not parse {text!r} as {Kind.FLOAT}", text=text, kind=Kind.FLOAT)
    if not _FLOAT.fullmatch(text):
        raise fault
    try:
        value = float(text)
    except ValueError:
        raise fault from None
    if math.isinf(value) and not re.fullmatch(r"[+-]?inf(inity)?", text, re.IGNORECASE):
        # overflowing literals such as 1e999 parse but are out of range
        raise fault
    return value


def coerce(annotation, text, /):
    """
    Convert a textual token into a value of the annotation's kind.

    Sequences are split on ',' (empty segments are kept as empty elements) and
    every element is coerced recursively; the first failing element aborts the
    whole conversion and propagates its fault.

    Raises
    - CanNotParseError: the text is incompatible with the kind.
    - UnsupportedTypeError: the annotation maps to no kind.
    """
    if not isinstance(text, str):
        raise TypeError("coerce() second argument must be a string")

    match kindof(annotation):
        case Kind.STRING:
            return text
        case Kind.SIGNED_INTEGER:
            try:
                return strip(annotation)(parse_int(text))
            except (ValueError, TypeError):
                # int subclasses such as IntEnum restrict the accepted values
                raise CanNotParseError(
                    f"can not parse {text!r} as {Kind.SIGNED_INTEGER}", text=text, kind=Kind.SIGNED_INTEGER
                ) from None
        case Kind.UNSIGNED_INTEGER:
            return parse_int(text, signed=False)
        case Kind.FLOAT:
            return parse_float(text)
        case Kind.BOOLEAN:
            return parse_bool(text)
        case Kind.SEQUENCE:
            target = element(annotation)
            return [coerce(target, segment) for segment in text.split(",")]

    raise RuntimeError("unreachable")


def assign(instance, attribute, value, /):
    """
    Write a value into a field of a bound instance.

    Raises
    - CanNotSetError: the destination is not writable (frozen dataclass,
      read-only property, slot-less attribute...).
    """
    try:
        setattr(instance, attribute, value)
    except AttributeError:
        raise CanNotSetError(f"can not set {attribute!r} on {type(instance).__name__}", attribute=attribute) from None


__all__ = (
    "Kind",
    "strip",
    "kindof",
    "element",
    "parse_bool",
    "parse_int",
    "parse_float",
    "coerce",
    "assign",
)
