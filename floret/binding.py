"""
Floret binding engine: consume tokens against a command tree.

Algorithm (per node)
1. Subcommand dispatch: when the first token equals a child's name, binding
   authority passes entirely to that child (its field is allocated when None)
   with the remaining tokens; the current node's flags are not processed.
2. Flag scan: tokens are consumed left to right while they start with '-'.
   • '--name' matches a descriptor by name, '-alias' by alias.
   • booleans are presence-only: '--name' writes True, '--!name' writes False.
   • other kinds consume the next token as their value and coerce it.
   • unmatched '--help'/'-h' raises HelpRequested; other unmatched flags follow
     the unknown-flag policy (ignored by default).
   • the first token that does not start with '-' stops the scan.
3. Resolution: every descriptor not written by a token is resolved from its
   environment variable, then its textual default; a required descriptor left
   without any of these fails the binding.

Returns the unconsumed tokens (from the first non-flag token onward) and the
node that handled the binding.

Leniency
- Writes refused by the destination (CanNotSetError) are ignored.
- Fields written before a fault stay written; there is no rollback.
"""
import contextlib
import dataclasses
import difflib
import os
from enum import StrEnum

from .coercion import Kind, assign, coerce
from .faults import *
from .utils import *


class Policy(StrEnum):
    """
    What the flag scan does with a flag-looking token it does not recognize.

    - IGNORE: skip it silently.
    - WARN: emit an UnknownFlagWarning and skip it.
    - REJECT: raise UnknownFlagError.
    """
    IGNORE = "ignore"
    WARN = "warn"
    REJECT = "reject"


def _write(instance, slot, value):
    with contextlib.suppress(CanNotSetError):
        assign(instance, slot, value)


def _allocate(node):
    """
    Allocate an empty instance of a subcommand structure without calling its constructor.

    Dataclass fields receive their declared default (or a fresh default_factory
    value), other fields None; annotated fields of plain classes missing a class
    level default are set to None. The binding pass then fills the flags.
    """
    shape = node.shape
    instance = shape.__new__(shape)
    if dataclasses.is_dataclass(shape):
        for field in dataclasses.fields(shape):
            if field.default is not dataclasses.MISSING:
                value = field.default
            elif field.default_factory is not dataclasses.MISSING:
                value = field.default_factory()
            else:
                value = None
            object.__setattr__(instance, field.name, value)
        return instance
    for slot in node.slots:
        if not hasattr(instance, slot):
            object.__setattr__(instance, slot, None)
    return instance


def _match(node, name, long):
    for descriptor in node.flags:
        if long and descriptor.name == name:
            return descriptor
        if not long and descriptor.alias is not None and descriptor.alias == name:
            return descriptor
    return None


def _unknown(node, token, policy):
    """
    Apply the unknown-flag policy to an unmatched flag-looking token.
    """
    if policy is Policy.IGNORE:
        return

    route = " ".join(step.name for step in node.path)
    known = ["--help", "-h"]
    for descriptor in node.flags:
        known.append("--" + descriptor.name)
        if descriptor.alias is not None:
            known.append("-" + descriptor.alias)
    suggestions = difflib.get_close_matches(token, known, 5)
    try:
        hint = "did you mean %r? you can also run '%s --help' to see all options" % (suggestions[0], route)
    except IndexError:
        hint = "try '%s --help' to see all available options" % route

    if policy is Policy.WARN:
        return trigger(UnknownFlagWarning(
            "unknown flag %r ignored" % token,
            node=node,
            token=token,
            suggestions=suggestions,
            hint=hint,
        ))
    raise UnknownFlagError(
        "unknown flag %r" % token,
        node=node,
        token=token,
        suggestions=suggestions,
        hint=hint,
    )


def _resolve(node, instance, descriptor, environ):
    """
    Fill a descriptor that no token wrote: environment, then default, then required check.
    """
    slot = node.slots[descriptor.index]

    if descriptor.env is not None and (value := environ.get(descriptor.env)) is not None:
        try:
            _write(instance, slot, coerce(descriptor.annotation, value))
        except CanNotParseError as fault:
            raise CanNotParseError(
                "can not parse (env %s) %r as %s" % (descriptor.env, value, descriptor.kind),
                code=FaultCode.CAN_NOT_PARSE_ENV,
                node=node,
                source="environment",
                flag=descriptor.name,
                text=value,
                kind=descriptor.kind,
                hint="fix or unset the %s environment variable" % descriptor.env,
            ) from fault
        return

    if descriptor.default is not None:
        try:
            _write(instance, slot, coerce(descriptor.annotation, descriptor.default))
        except CanNotParseError as fault:
            raise CanNotParseError(
                "can not parse (default value) %r as %s" % (descriptor.default, descriptor.kind),
                code=FaultCode.CAN_NOT_PARSE_DEFAULT,
                node=node,
                source="default",
                flag=descriptor.name,
                text=descriptor.default,
                kind=descriptor.kind,
            ) from fault
        return

    if descriptor.required:
        raise MissingRequiredError(
            "required parameter %s is missing" % descriptor.name,
            node=node,
            flag=descriptor.name,
            hint="pass it as '--%s <%s>'" % (descriptor.name, descriptor.name.upper()),
        )


def bind(node, tokens, instance, /, *, environ=Unset, policy=Policy.IGNORE):
    """
    Bind a token sequence into an instance of the node's shape.

    Parameters
    - node: schema.Node, fully built (see schema.build).
    - tokens: Iterable[str], the command-line tokens (program name excluded).
    - instance: an instance of node.shape receiving the values.
    - environ: Mapping[str, str] consulted for environment-bound flags
      (defaults to os.environ).
    - policy: Policy applied to unrecognized flag-looking tokens.

    Returns
    - tuple[list[str], Node]: the unconsumed tokens and the handling node.

    Raises
    - TypeMismatchError: instance is not an instance of node.shape.
    - HelpRequested: an unmatched --help/-h was found.
    - MissingValueError: a value-taking flag is the last token.
    - CanNotParseError: a token, environment or default value does not coerce.
    - MissingRequiredError: a required flag has no value from any source.
    - UnknownFlagError: policy is REJECT and an unknown flag was found.
    """
    environ = coalesce(environ, os.environ)
    policy = Policy(policy)
    tokens = list(tokens)

    if not isinstance(instance, node.shape):
        raise TypeMismatchError(
            "type mismatch: expected %s, got %s" % (node.shape.__name__, type(instance).__name__),
            node=node,
        )

    if tokens:
        for child in node.subcommands:
            if child.name == tokens[0]:
                slot = node.slots[child.index]
                if (target := getattr(instance, slot, None)) is None:
                    target = _allocate(child)
                    _write(instance, slot, target)
                return bind(child, tokens[1:], target, environ=environ, policy=policy)

    written = set()
    position = 0

    while position < len(tokens) and (token := tokens[position]).startswith("-"):
        long = token.startswith("--")
        name = token[2:] if long else token[1:]
        negated = name.startswith("!")

        descriptor = _match(node, name[1:] if negated else name, long)
        if descriptor is None or (negated and descriptor.kind is not Kind.BOOLEAN):
            if token in ("--help", "-h"):
                raise HelpRequested("help requested", node=node)
            _unknown(node, token, policy)
            position += 1
            continue

        slot = node.slots[descriptor.index]

        if descriptor.kind is Kind.BOOLEAN:
            _write(instance, slot, not negated)
            written.add(descriptor.name)
            position += 1
            continue

        if position + 1 >= len(tokens):
            raise MissingValueError(
                "%s requires %s" % (name, descriptor.kind),
                node=node,
                flag=descriptor.name,
                hint="pass a value after %s" % token,
            )

        value = tokens[position + 1]
        try:
            _write(instance, slot, coerce(descriptor.annotation, value))
        except CanNotParseError as fault:
            raise CanNotParseError(
                "can not parse %r as %s" % (value, descriptor.kind),
                node=node,
                source="argument",
                flag=descriptor.name,
                text=value,
                kind=descriptor.kind,
            ) from fault
        written.add(descriptor.name)
        position += 2

    for descriptor in node.flags:
        if descriptor.name not in written:
            _resolve(node, instance, descriptor, environ)

    return tokens[position:], node


__all__ = (
    "Policy",
    "bind",
)
