r"""
Floret argument specifications.

Overview
- Specs (attached to class fields through typing.Annotated)
  • Header: command-level metadata (name override, author, about, long about,
    version). Carried by a zero-field marker, conventionally
    `_: Annotated[None, Header(...)] = None`.
  • Flag: a bindable field matched against `--name` and, optionally, `-alias`.
  • Subcommand: a nested bound structure selected by the first token.

- Kinds
  • unsigned: a NewType over int marking unsigned-integer flags.

Metadata (sanitized on construction)
- Header: every field is Unset | str; strings are kept verbatim.
- Flag
  • name: non-empty str (matched after the `--` prefix).
  • alias: Unset | non-empty str (matched after the `-` prefix).
  • default: Unset | str (textual, coerced like a command-line value).
  • env: Unset | non-empty str (environment variable consulted before the default).
  • required: bool | str (text is parsed when the schema is built).
  • about: str (help text, may be empty).
- Subcommand
  • name: non-empty str (matched against the first unconsumed token).

Quick example:
    >>> from dataclasses import dataclass
    >>> from typing import Annotated
    >>> from floret import Header, Flag, Subcommand
    >>> @dataclass
    ... class Add:
    ...     _: Annotated[None, Header(about="Add two numbers")] = None
    ...     a: Annotated[int, Flag("a", required=True)] = 0
    ...     b: Annotated[int, Flag("b", required=True)] = 0
    ...
    >>> @dataclass
    ... class Calc:
    ...     _: Annotated[None, Header(version="1.0.0")] = None
    ...     verbose: Annotated[bool, Flag("verbose", alias="v")] = False
    ...     add: Annotated[Add | None, Subcommand("add")] = None
    ...

Public API
- Classes: Header, Flag, Subcommand
- Types: unsigned
"""
from typing import NewType

from .utils import *

unsigned = NewType("unsigned", int)


def _sanitize_text(cls, metadata, name, /, *, empty=False):
    """
    Internal: validate an Unset | str metadata entry in place.

    Raises
    - TypeError: when the entry is neither Unset nor a string.
    - ValueError: when empty is False and the string is empty after trimming.
    """
    if not isinstance(value := metadata[name], str | Unset):
        raise TypeError(f"{cls.__typename__} {name!r} must be a string")
    elif isinstance(value, str) and not empty and not value.strip():
        raise ValueError(f"{cls.__typename__} {name!r} cannot be empty")


class Header(metaclass=IntrospectableType):
    """
    Command-level metadata carried by a zero-field marker.

    Every entry is optional; Unset entries are reported as None. The name, when
    given, overrides the name the command would otherwise receive (executable
    name for the root, subcommand name for children).
    """

    __introspectable__ = (
        "name",
        "author",
        "about",
        "long_about",
        "version",
    )

    def __init__(self, *, name=Unset, author=Unset, about=Unset, long_about=Unset, version=Unset):
        metadata = {
            "name": name,
            "author": author,
            "about": about,
            "long_about": long_about,
            "version": version,
        }
        _sanitize_text(type(self), metadata, "name")
        for entry in ("author", "about", "long_about", "version"):
            _sanitize_text(type(self), metadata, entry, empty=True)

        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))

    def __header__(self):
        """
        Introspection hook: identify this spec as a Header.
        """
        return self


class Flag(metaclass=IntrospectableType):
    """
    Bindable field specification.

    A Flag describes how one field of a bound structure is populated:
    explicitly from `--name value` / `-alias value` tokens (presence-only for
    booleans, `--!name` meaning false), otherwise from the environment variable,
    otherwise from the textual default. A required flag that ends up with none
    of these fails the binding.

    Notes
    - required may be given as boolean text ("true", "0", ...). It is kept as
      given here and parsed by the schema builder, so a malformed value fails
      the build rather than the declaration.
    """

    __introspectable__ = (
        "name",
        "alias",
        "default",
        "env",
        "required",
        "about",
    )

    def __init__(self, name, /, *, alias=Unset, default=Unset, env=Unset, required=False, about=""):
        metadata = {
            "name": name,
            "alias": alias,
            "default": default,
            "env": env,
            "required": required,
            "about": about,
        }
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        _sanitize_text(type(self), metadata, "name")
        _sanitize_text(type(self), metadata, "alias")
        _sanitize_text(type(self), metadata, "default", empty=True)
        _sanitize_text(type(self), metadata, "env")
        if not isinstance(required, bool | str):
            raise TypeError(f"{type(self).__typename__} 'required' must be a boolean or a string")
        if not isinstance(about, str):
            raise TypeError(f"{type(self).__typename__} 'about' must be a string")

        for name, object in metadata.items():
            setattr(self, "_" + name, coalesce(object))

    def __flag__(self):
        """
        Introspection hook: identify this spec as a Flag.
        """
        return self


class Subcommand(metaclass=IntrospectableType):
    """
    Nested command specification.

    The annotated field holds the bound structure of the subcommand (usually
    `Child | None = None`); it is allocated on first use when the first token
    equals the subcommand name.
    """

    __introspectable__ = ("name",)

    def __init__(self, name, /):
        if not isinstance(name, str):
            raise TypeError(f"{type(self).__typename__} 'name' must be a string")
        elif not name.strip():
            raise ValueError(f"{type(self).__typename__} 'name' cannot be empty")
        self._name = name

    def __subcommand__(self):
        """
        Introspection hook: identify this spec as a Subcommand.
        """
        return self


__all__ = (
    # Public API surface for consumers of floret.arguments.
    # These names are re-exported from the package __init__.

    # Classes (specifications)
    "Header",
    "Flag",
    "Subcommand",

    # Kinds
    "unsigned",
)
