"""Command-line parsing for the simulated git program."""

import shlex
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Union

from gitquest.core.errors import CommandParseError

PROGRAM = 'git'

FlagValue = Union[bool, str]


@dataclass
class ParsedCommand:
    """A tokenised command: subcommand name plus its raw arguments."""
    name: str
    tokens: List[str] = field(default_factory=list)
    raw: str = ''


@dataclass
class Arguments:
    """Flags and positionals of a subcommand after option parsing."""
    flags: Dict[str, FlagValue] = field(default_factory=dict)
    positionals: List[str] = field(default_factory=list)
    paths: List[str] = field(default_factory=list)
    separator: bool = False

    def has(self, *names: str) -> bool:
        return any(name in self.flags for name in names)

    def value(self, *names: str) -> Optional[str]:
        for name in names:
            value = self.flags.get(name)
            if isinstance(value, str):
                return value
        return None


def tokenize(text: str) -> List[str]:
    """
    Split a command line into tokens, honouring shell quoting.

    Raises:
        CommandParseError: On unbalanced quotes
    """
    try:
        return shlex.split(text)
    except ValueError as exc:
        raise CommandParseError(f"error: could not parse command line ({exc})") from exc


def parse(text: str) -> ParsedCommand:
    """
    Parse a full command line beginning with the program name.

    Raises:
        CommandParseError: Empty input, wrong program or missing subcommand
    """
    tokens = tokenize(text or '')
    if not tokens:
        raise CommandParseError("error: empty command; try 'git status'")

    if tokens[0] != PROGRAM:
        raise CommandParseError(f"'{tokens[0]}' is not a recognized command")

    if len(tokens) == 1:
        raise CommandParseError(
            'usage: git <command> [<args>]\n'
            "See 'git help' for the list of supported commands."
        )

    return ParsedCommand(name=tokens[1], tokens=tokens[2:], raw=text)


def parse_arguments(
    tokens: Iterable[str],
    switches: Iterable[str] = (),
    options: Iterable[str] = (),
) -> Arguments:
    """
    Parse subcommand arguments against the flags it accepts.

    ``switches`` take no value. ``options`` consume the next token (or an
    inline ``--name=value``). Everything after ``--`` is a path.

    Raises:
        CommandParseError: Unknown flag or option without value
    """
    switches = set(switches)
    options = set(options)
    args = Arguments()
    tokens = list(tokens)
    i = 0

    while i < len(tokens):
        token = tokens[i]
        i += 1

        if token == '--':
            args.separator = True
            args.paths.extend(tokens[i:])
            break

        if token.startswith('-') and token != '-' and not _is_number_flag(token):
            name, eq, inline = token.partition('=')
            if name in options:
                if eq:
                    args.flags[name] = inline
                elif i < len(tokens):
                    args.flags[name] = tokens[i]
                    i += 1
                else:
                    raise CommandParseError(f"error: option '{name}' requires a value")
            elif name in switches and not eq:
                args.flags[name] = True
            else:
                raise CommandParseError(f"error: unknown option '{token}'")
            continue

        args.positionals.append(token)

    return args


def _is_number_flag(token: str) -> bool:
    # ``-3`` style count for log
    return len(token) > 1 and token[1:].isdigit()
