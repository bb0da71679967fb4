# tapegrad/errors.py
"""
Exceptions raised by the tracing engine.

Errors raised by the raw numeric kernels themselves (shape mismatches,
singular matrices, ...) are not wrapped: they reach the caller unchanged.
The classes below cover conditions that only the engine can detect.
"""


class AutogradError(Exception):
    """Base class for every engine-level error."""


class NonScalarOutputError(AutogradError, ValueError):
    """
    Raised when the differentiated function returns a value with more than
    one element.

    Attributes
    ----------
    shape : tuple
        Shape of the offending output.
    """

    def __init__(self, shape) -> None:
        super().__init__(
            f"differentiated function must return a scalar, got an output of shape {tuple(shape)}"
        )
        self.shape = tuple(shape)


class TapeMismatchError(AutogradError, RuntimeError):
    """
    Raised when a primitive receives traced operands that do not belong to
    the recording in progress: nodes from two different tapes, or a node
    kept alive from an earlier call.
    """


class RecycleShapeMismatch(AutogradError):
    """
    Raised by a recycled tape slot whose previous occupant was recorded by a
    different primitive or with a different number of arguments.

    The tape catches it and allocates a fresh node for the slot, so this
    error never reaches user code.
    """

    def __init__(self, index: int, previous, current) -> None:
        super().__init__(
            f"tape slot {index} held {previous} but the current call recorded {current}"
        )
        self.index = index
        self.previous = previous
        self.current = current


class BackwardArityError(AutogradError, ValueError):
    """Raised when a backward function does not return one entry per argument."""

    def __init__(self, name: str, expected: int, got: int) -> None:
        super().__init__(
            f"backward of primitive '{name}' returned {got} gradients for {expected} arguments"
        )
        self.name = name
        self.expected = expected
        self.got = got


class DuplicatePrimitiveError(AutogradError, KeyError):
    """Raised when a primitive name is registered twice without `replace=True`."""

    def __init__(self, name: str) -> None:
        super().__init__(name)
        self.name = name

    def __str__(self) -> str:
        return f"primitive '{self.name}' is already registered"


class GradCheckConfigError(AutogradError, ValueError):
    """Raised for an invalid gradient-check configuration."""


class GradientShapeError(AutogradError, ValueError):
    """
    Raised when a backward function returns a contribution whose shape does
    not match the argument it is routed to.

    A size-1 contribution is broadcast to the argument's shape; any other
    disagreement is an error in the backward rule.
    """

    def __init__(self, name, expected, got) -> None:
        super().__init__(
            f"backward of primitive '{name}' returned a gradient of shape {tuple(got)} "
            f"for an argument of shape {tuple(expected)}"
        )
        self.name = name
        self.expected = tuple(expected)
        self.got = tuple(got)
