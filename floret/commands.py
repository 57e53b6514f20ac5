"""
Floret command layer: the application facade over schema and binder.

What this module provides
- App: builds (once per shape and name) the command tree of a class and binds
  token streams into its instances.
  • help(): the rendered usage text of the node.
  • schema(): a JSON document mirroring the command tree.
  • bind(instance, tokens): run the binder and return the unconsumed tokens
    together with an App wrapping the node that handled them.
- bind(instance, tokens): shorthand for App(type(instance)).bind(...).
- invoke(instance, prompt): process-boundary runner. Faults are rendered with
  rich and terminate the process (help: stdout, status 0; anything else: the
  fault plus the node usage on stderr, status 1).

Quick start
    from dataclasses import dataclass
    from typing import Annotated
    from floret import Header, Flag, invoke

    @dataclass
    class Greet:
        _: Annotated[None, Header(about="Say hello", version="1.0.0")] = None
        name: Annotated[str, Flag("name", alias="n", env="GREET_NAME", default="world")] = ""
        loud: Annotated[bool, Flag("loud", about="Shout the greeting")] = False

    if __name__ == "__main__":
        greet = Greet()
        invoke(greet)
        print(("hello %s" % greet.name).upper() if greet.loud else "hello %s" % greet.name)

Naming
- The root command is named after the executable: __prog__ from __main__ when
  present, else sys.argv[0], else "unknown"; a trailing ".exe" and the
  directory part are stripped. A Header name always takes precedence.
"""
import functools
import json
import os
import posixpath
import shlex
import sys
from collections.abc import Iterable
from warnings import catch_warnings, simplefilter

from .binding import Policy, bind as _bind
from .faults import *
from .schema import Node, build
from .utils import *


def _executable():
    """
    Return the default root command name derived from the running executable.
    """
    name = getattr(__import__("__main__"), "__prog__", Unset)
    if name is Unset:
        name = sys.argv[0] if sys.argv and sys.argv[0] else "unknown"
    name = posixpath.basename(str(name).replace("\\", "/")).removesuffix(".exe")
    return name or "unknown"


@functools.cache
def _tree(shape, name, /):
    return build(shape, name=name)


def _tokenize(prompt):
    """
    Normalize an invoke() prompt into a list of tokens.

    Raises
    - TypeError: when prompt is not Unset/str/Iterable[str], or when an
      iterable contains a non-string element.
    """
    if prompt is Unset:
        return sys.argv[1:]
    if isinstance(prompt, str):
        return shlex.split(prompt)
    if isinstance(prompt, Iterable):
        tokens = list(prompt)
        if not all(isinstance(token, str) for token in tokens):
            raise TypeError("invoke() prompt must be a string or an iterable of strings")
        return tokens
    raise TypeError("invoke() prompt must be a string or an iterable of strings")


class App(metaclass=IntrospectableType):
    """
    Application facade bound to one node of a command tree.

    Parameters
    - shape: the class describing the command (or an already built Node).
    - name: default name of the root command (executable name when omitted).
    - environ: Mapping[str, str] consulted for environment-bound flags
      (os.environ when omitted).
    - policy: Policy applied to unknown flags (Policy.IGNORE by default).
    - colorful/fancy: rendering options used when faults reach invoke().

    Notes
    - Trees are cached per (shape, name); building the same App twice reuses
      the nodes, so help rendering happens once per process.
    """

    __introspectable__ = (
        "node",
        "environ",
        "policy",
        "colorful",
        "fancy",
    )

    __displayable__ = (
        "node",
        "policy",
        "colorful",
        "fancy",
    )

    def __init__(self, shape, /, name=Unset, *, environ=Unset, policy=Policy.IGNORE, colorful=False, fancy=False):
        if not isinstance(name, str | Unset):
            raise TypeError("App() 'name' must be a string")
        if isinstance(shape, Node):
            self._node = shape
        else:
            self._node = _tree(shape, coalesce(name, _executable()))
        self._environ = coalesce(environ, os.environ)
        self._policy = Policy(policy)
        self._colorful = bool(colorful)
        self._fancy = bool(fancy)

    def help(self):
        """
        Return the usage text of the wrapped node.
        """
        return self.node.help

    def schema(self):
        """
        Return the JSON serialization of the wrapped node and its descendants.
        """
        return json.dumps(self.node.__schema__(), indent=2, ensure_ascii=False)

    def bind(self, instance, tokens, /):
        """
        Bind tokens into instance.

        Returns
        - tuple[list[str], App]: the unconsumed tokens and an App wrapping the
          node that handled the binding (same options as self).

        Raises
        - CommandException subclasses, see floret.binding.bind.
        """
        remaining, node = _bind(self.node, tokens, instance, environ=self.environ, policy=self.policy)
        if node is self.node:
            return remaining, self
        return remaining, App(node, environ=self._environ, policy=self.policy, colorful=self.colorful, fancy=self.fancy)

    def __invoke__(self, instance, prompt=Unset, /):
        """
        Bind the prompt into instance, surfacing faults at the process boundary.

        Warnings emitted while binding are rendered on stderr; errors are
        rendered with the usage of the node that was handling the tokens and
        terminate the process.
        """
        tokens = _tokenize(prompt)
        options = dict(shell=True, colorful=self.colorful, fancy=self.fancy)
        failure = None
        with catch_warnings(record=True) as caught:
            simplefilter("always", CommandWarning)
            try:
                remaining, _ = self.bind(instance, tokens)
            except CommandException as fault:
                failure = fault
        for warning in caught:
            if isinstance(warning.message, CommandWarning):
                trigger(warning.message, **options)
        if failure is not None:
            trigger(failure, node=failure.options.get("node", self.node), **options)
        return remaining


def bind(instance, tokens, /):
    """
    Bind tokens into instance using the tree derived from its class.

    Returns
    - tuple[list[str], App]: see App.bind.
    """
    return App(type(instance)).bind(instance, tokens)


def invoke(instance, prompt=Unset, /, **options):
    """
    Convenience runner: bind a prompt into instance at the process boundary.

    Parameters
    - instance: an instance of the class describing the command.
    - prompt:
      • Unset: read sys.argv[1:].
      • str: split with shlex.split.
      • Iterable[str]: use items as tokens (each must be str).
    - options: forwarded to App (name, environ, policy, colorful, fancy).

    Returns
    - list[str]: the unconsumed tokens.

    Exits
    - status 0 after printing the help banner when --help/-h is requested.
    - status 1 after printing the fault and the node usage on any other fault.
    """
    return App(type(instance), **options).__invoke__(instance, prompt)


__all__ = (
    # Public API surface for consumers of floret.commands.
    # These names are re-exported from the package __init__.
    "App",
    "Policy",
    "bind",
    "invoke",
)
