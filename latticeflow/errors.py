"""
LatticeFlow Errors
==================
Exception taxonomy shared by every LatticeFlow component.

    LatticeFlowError
      ├── ConfigurationError   bad construction sizes or hyperparameters
      └── ShapeMismatchError   an operand's shape disagrees with the
                               tensor or operation expecting it

Both concrete errors also derive from the builtin exceptions callers
would naturally catch (``ValueError``, and ``IndexError`` for shape
problems), so generic handlers keep working.
"""


class LatticeFlowError(Exception):
    """Base class for all LatticeFlow errors."""


class ConfigurationError(LatticeFlowError, ValueError):
    """A size, hyperparameter, or config file value is invalid."""


class ShapeMismatchError(LatticeFlowError, ValueError, IndexError):
    """
    An operand's shape disagrees with the operation expecting it.

    Raised by the forward pass (sample / feature shapes, flattening,
    the dense/fluid combination), by the modulator when the feature
    vector has fewer entries than the weight matrix has rows, and by
    the parameter store when an assignment would change a tensor's
    shape.
    """
