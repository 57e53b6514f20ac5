"""
Floret schema layer: derive an immutable command tree from a class.

What this module provides
- Node: one command or subcommand (name, descriptive metadata, flags,
  subcommands, lazily rendered help).
- Descriptor: one bindable field (long name, alias, kind, slot index, textual
  default, environment variable, required-ness, help text).
- build(shape, parent, name): introspect a class once and return its Node tree.

Derivation rules
- Fields are visited in typing.get_type_hints() order (base classes first);
  a field's slot index is its position in that order.
- A field typed None and annotated with a Header is the command marker: it
  renames the command and fills author/about/long_about/version.
- Fields whose name starts with '_' are private and skipped.
- A Subcommand field recurses into its (optional) class type.
- A Flag field becomes a Descriptor whose kind is derived from its annotation.
- Anything else is ignored.

Lifecycle
- Construction never sets parents nor renders help. A post-build pass links
  every child to its parent and renders help depth-first, exactly once per node,
  before the tree is handed out.
- After that pass nodes are read-only; help is memoized behind a lock so that
  concurrent first readers observe a complete rendering.
"""
import dataclasses
import threading
import typing

from .coercion import Kind, kindof, parse_bool, strip
from .faults import CanNotParseError, FaultCode, UnsupportedTypeError
from .utils import *

_HELP_LABEL = "-h, --help"
_HELP_ABOUT = "Print this help message and exit"


def _metadata(annotation, hook):
    """
    Return the first Annotated metadata entry implementing the given hook, or Unset.
    """
    if typing.get_origin(annotation) is not typing.Annotated:
        return Unset
    for entry in annotation.__metadata__:
        if callable(getattr(entry, hook, None)):
            return getattr(entry, hook)()
    return Unset


def _aggregate(shape):
    """
    Resolve an annotation to a class usable as a bound structure, or raise.

    A bound structure is a dataclass or a class declaring annotated fields.
    """
    shape = strip(shape)
    if isinstance(shape, type):
        if dataclasses.is_dataclass(shape):
            return shape
        try:
            if typing.get_type_hints(shape):
                return shape
        except (NameError, TypeError):
            pass
    raise UnsupportedTypeError(f"type not supported: {shape!r}", annotation=shape)


class Descriptor(metaclass=IntrospectableType):
    """
    Derived metadata of one bindable field.

    The kind records the outer category of the field ("sequence" for list[T],
    the scalar category otherwise); booleans are presence-only when bound.
    """

    __introspectable__ = (
        "name",
        "alias",
        "kind",
        "index",
        "default",
        "env",
        "required",
        "about",
        "annotation",
    )

    __displayable__ = (
        "name",
        "alias",
        "kind",
        "index",
        "default",
        "env",
        "required",
        "about",
    )

    def __init__(self, flag, annotation, index, /):
        required = flag.required
        if isinstance(required, str):
            try:
                required = parse_bool(required)
            except CanNotParseError as fault:
                raise CanNotParseError(
                    f"can not parse 'required' metadata {required!r} of flag {flag.name!r} as {Kind.BOOLEAN}",
                    code=FaultCode.MALFORMED_METADATA,
                    source="metadata",
                    text=required,
                    kind=Kind.BOOLEAN,
                ) from fault

        self._name = flag.name
        self._alias = flag.alias
        self._kind = kindof(annotation)
        self._index = index
        self._default = flag.default
        self._env = flag.env
        self._required = required
        self._about = flag.about
        self._annotation = annotation

    @property
    def label(self):
        """
        Options-column label: "-alias, --name" or "--name".
        """
        if self.alias is not None:
            return f"-{self.alias}, --{self.name}"
        return f"--{self.name}"

    def __schema__(self):
        """
        Serializable mapping (optional entries are omitted when absent).
        """
        schema = {"name": self.name, "kind": str(self.kind), "about": self.about, "index": self.index}
        if self.default is not None:
            schema["default"] = self.default
        if self.env is not None:
            schema["env"] = self.env
        if self.alias is not None:
            schema["alias"] = self.alias
        schema["required"] = self.required
        return schema


class Node(metaclass=IntrospectableType):
    """
    Derived, immutable description of one command or subcommand.

    Properties
    - name: token matched against the first unconsumed token by the parent.
    - index: slot of the subcommand field in the parent structure (0 for roots).
    - author/about/long_about/version: optional descriptive strings.
    - flags: Descriptors in field declaration order.
    - subcommands: child Nodes in field declaration order.
    - slots: attribute names of the bound structure, indexed by slot.
    - shape: the class the node was built from.
    - parent: non-owning back-reference, set by the linking pass.
    - help: usage text, rendered once.
    """

    __introspectable__ = (
        "name",
        "index",
        "author",
        "about",
        "long_about",
        "version",
        "flags",
        "subcommands",
        "slots",
        "shape",
        "parent",
    )

    __displayable__ = (
        "name",
        "index",
        "author",
        "about",
        "long_about",
        "version",
        "flags",
        "subcommands",
    )

    def __init__(self, shape, name, index, /):
        self._shape = shape
        self._name = name
        self._index = index
        self._author = None
        self._about = None
        self._long_about = None
        self._version = None
        self._flags = []
        self._subcommands = []
        self._slots = []
        self._parent = None
        self._help = Unset
        self._lock = threading.Lock()

        for slot, (attribute, annotation) in enumerate(typing.get_type_hints(shape, include_extras=True).items()):
            self._slots.append(attribute)

            if typing.get_origin(strip(annotation)) is typing.ClassVar:
                continue

            if strip(annotation) in (None, type(None)):
                if header := _metadata(annotation, "__header__"):
                    if header.name is not None:
                        self._name = header.name
                    self._author = header.author
                    self._about = header.about
                    self._long_about = header.long_about
                    self._version = header.version
                continue

            if attribute.startswith("_"):
                continue

            if subcommand := _metadata(annotation, "__subcommand__"):
                self._subcommands.append(Node(_aggregate(annotation), subcommand.name, slot))
                continue

            if flag := _metadata(annotation, "__flag__"):
                self._flags.append(Descriptor(flag, annotation, slot))
                continue

    @property
    def root(self):
        """
        Return the topmost node of the current hierarchy.
        """
        child, parent = self, self.parent
        while parent:
            child, parent = parent, parent.parent
        return child

    @property
    def path(self):
        """
        Return the full ancestry from root to this node as a tuple.
        """
        path = [node := self]
        while node.parent:
            path.append(node := node.parent)
        return tuple(reversed(path))

    @property
    def help(self):
        """
        Usage text of this node, rendered on first access and memoized.
        """
        return self.render()

    def render(self):
        """
        Render the usage text exactly once; later calls return the memoized text.
        """
        if self._help is Unset:
            with self._lock:
                if self._help is Unset:
                    self._help = _render(self)
        return self._help

    @property
    def banner(self):
        """
        Help-request output: name and version, author, description, then help.
        """
        lines = [self.name if self.version is None else f"{self.name} {self.version}"]
        if self.author is not None:
            lines.append(self.author)
        if (about := self.about if self.long_about is None else self.long_about) is not None:
            lines.append(about)
        return "\n".join(lines) + "\n\n" + self.help

    def _initialize(self, parent, /):
        """
        Link this node under its parent and render help, depth-first.
        """
        self._parent = parent
        self.render()
        for child in self._subcommands:
            child._initialize(self)

    def __schema__(self):
        """
        Serializable mapping mirroring the tree (parents and shapes excluded).
        """
        schema = {"command": self.name, "index": self.index}
        for entry in ("author", "about", "long_about", "version"):
            if (value := getattr(self, entry)) is not None:
                schema[entry] = value
        schema["flags"] = [flag.__schema__() for flag in self.flags]
        schema["subcommands"] = [child.__schema__() for child in self.subcommands]
        schema["help"] = self.help
        return schema


def _render(node):
    """
    Render the plain-text usage document of a node.

    Layout
        Usage:
        \t<path> <COMMAND> [OPTIONS] --req <REQ> [ARGUEMENTS]

        Options:
        \t-a, --name    about [default: X] [env: Y] (required)
        \t-h, --help    Print this help message and exit

        Commands:
        \tname    about

    The Options section appears when the node declares flags, the Commands
    section when it declares subcommands. Label columns are padded to the
    longest label of their section plus four spaces.
    """
    usage = " ".join(step.name for step in node.path)
    if node.subcommands:
        usage += " <COMMAND>"
    if node.flags:
        usage += " [OPTIONS]"
        for flag in filter(lambda x: x.required, node.flags):
            usage += f" --{flag.name} <{flag.name.upper()}>"
    usage += " [ARGUEMENTS]"

    sections = ["Usage:\n\t" + usage]

    if node.flags:
        width = max(len(_HELP_LABEL), *(len(flag.label) for flag in node.flags)) + 4
        lines = ["Options:"]
        for flag in node.flags:
            details = [flag.about]
            if flag.default is not None:
                details.append(f"[default: {flag.default}]")
            if flag.env is not None:
                details.append(f"[env: {flag.env}]")
            if flag.required:
                details.append("(required)")
            lines.append(("\t" + flag.label.ljust(width) + " ".join(filter(None, details))).rstrip())
        lines.append("\t" + _HELP_LABEL.ljust(width) + _HELP_ABOUT)
        sections.append("\n".join(lines))

    if node.subcommands:
        width = max(len(child.name) for child in node.subcommands) + 4
        lines = ["Commands:"]
        for child in node.subcommands:
            lines.append(("\t" + child.name.ljust(width) + (child.about or "")).rstrip())
        sections.append("\n".join(lines))

    return "\n\n".join(sections) + "\n"


def build(shape, /, parent=None, name=Unset):
    """
    Introspect a class and return its command tree.

    Parameters
    - shape: a dataclass or annotated class, optionally wrapped in `| None` or
      Annotated[...].
    - parent: Node | None, linked as the parent of the returned root.
    - name: default command name (overridden by a Header name); defaults to the
      class name.

    Raises
    - UnsupportedTypeError: the shape (or a subcommand's type, or a flag's type)
      is not supported.
    - CanNotParseError: a flag's required metadata is malformed boolean text.

    Returns
    - Node: the fully linked root, with help rendered for every node.
    """
    if not isinstance(parent, Node | None):
        raise TypeError("build() 'parent' must be a node")
    shape = _aggregate(shape)
    node = Node(shape, coalesce(name, shape.__name__), 0)
    node._initialize(parent)
    return node


__all__ = (
    "Node",
    "Descriptor",
    "build",
)
