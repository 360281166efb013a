from __future__ import annotations


class FibseqError(Exception):
    """
    Base class for all fibseq errors.
    """


class CommandError(FibseqError):
    """
    A single command was rejected.

    Always recovered at the command-handler boundary and reported as a
    one-line message. Runtime state is left exactly as it was.
    """


class InvalidSeed(CommandError, ValueError):
    """
    Seed terms are negative or out of order (b < a), or a term index is negative.
    """


class InvalidLength(CommandError, ValueError):
    """
    Non-positive block length, or a batch size too small to chain from.
    """


class CommandSyntaxError(CommandError):
    """
    Wrong argument count or a non-numeric argument.
    """


class IllegalTransition(CommandError):
    """
    Command not valid in the current phase.
    """
