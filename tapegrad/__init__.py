# tapegrad/__init__.py
# Reverse-mode automatic differentiation on a recorded tape

from .core.node import Node
from .core.tape import Tape, TapePool
from .core.tracer import apply, is_node, unwrap
from .core.primitive import Primitive, Registry, primitive, primitives
from .core.seeds import GradFunction, differentiate, grad, value
from .core.graph_utils import get_graph_stats, print_graph_summary, print_computation_graph
from .config import GradCheckConfig, EngineConfig, DEFAULT_GRADCHECK, DEFAULT_ENGINE
from .errors import (
    AutogradError,
    NonScalarOutputError,
    TapeMismatchError,
    RecycleShapeMismatch,
    BackwardArityError,
    DuplicatePrimitiveError,
    GradCheckConfigError,
    GradientShapeError,
)
from .gradcheck import GradCheckReport, GradientCheckFailure, check, gradcheck

# Primitive library (registers primitives and Node operators)
from . import ops

__version__ = "0.1.0"

__all__ = [
    # Core
    'Node',
    'Tape',
    'TapePool',
    'apply',
    'is_node',
    'unwrap',
    # Primitives
    'Primitive',
    'Registry',
    'primitive',
    'primitives',
    'ops',
    # Driver
    'GradFunction',
    'differentiate',
    'grad',
    'value',
    # Checker
    'GradCheckReport',
    'GradientCheckFailure',
    'check',
    'gradcheck',
    # Graph utilities
    'get_graph_stats',
    'print_graph_summary',
    'print_computation_graph',
    # Config
    'GradCheckConfig',
    'EngineConfig',
    'DEFAULT_GRADCHECK',
    'DEFAULT_ENGINE',
    # Errors
    'AutogradError',
    'NonScalarOutputError',
    'TapeMismatchError',
    'RecycleShapeMismatch',
    'BackwardArityError',
    'DuplicatePrimitiveError',
    'GradCheckConfigError',
    'GradientShapeError',
]
