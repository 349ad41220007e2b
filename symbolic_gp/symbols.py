"""
symbolic_gp/symbols.py - Symbol records, safe primitives and standard symbol sets
"""
import math
import sys
from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
from numba import vectorize

# Variadic symbols accept up to this many children; creators cap them lower
MAX_VARIADIC_ARITY = 255

# Denominators below this magnitude are treated as zero
DIVISION_EPSILON = 1e-12

# Arguments above this make exp/sinh/cosh overflow
EXP_CLIP = 700.0

# SafeDivision's answer for a zero denominator
SAFE_DIVISION_LIMIT = sys.float_info.max

CONSTANT_RANGE = (-10.0, 10.0)

Operation = Callable[[Sequence[float]], float]
Template = Union[str, Callable[[Sequence[str]], str]]


# Safe primitives, compiled to numpy ufuncs. They take scalars as well as
# whole columns, and the interpreter and compiled code call the same ones.

@vectorize(['float64(float64, float64)'])
def protected_div(a, b):
    if abs(b) < DIVISION_EPSILON:
        return 0.0
    return a / b


@vectorize(['float64(float64, float64)'])
def safe_div(a, b):
    if abs(b) < DIVISION_EPSILON:
        return SAFE_DIVISION_LIMIT
    return a / b


@vectorize(['float64(float64)'])
def protected_sqrt(x):
    if x < 0.0:
        return 0.0
    return math.sqrt(x)


@vectorize(['float64(float64)'])
def protected_sin(x):
    if not math.isfinite(x):
        return 0.0
    return math.sin(x)


@vectorize(['float64(float64)'])
def protected_cos(x):
    if not math.isfinite(x):
        return 0.0
    return math.cos(x)


@vectorize(['float64(float64)'])
def protected_tan(x):
    if not math.isfinite(x):
        return 0.0
    return math.tan(x)


@vectorize(['float64(float64)'])
def protected_exp(x):
    if math.isnan(x):
        return 0.0
    return math.exp(min(x, EXP_CLIP))


@vectorize(['float64(float64)'])
def protected_log(x):
    magnitude = abs(x)
    if not magnitude > DIVISION_EPSILON:
        return 0.0
    return math.log(magnitude)


@vectorize(['float64(float64)'])
def protected_sinh(x):
    if math.isnan(x):
        return 0.0
    return math.sinh(max(-EXP_CLIP, min(x, EXP_CLIP)))


@vectorize(['float64(float64)'])
def protected_cosh(x):
    if math.isnan(x):
        return 0.0
    return math.cosh(max(-EXP_CLIP, min(x, EXP_CLIP)))


@vectorize(['float64(float64)'])
def sigmoid(x):
    if math.isnan(x):
        return 0.0
    return 1.0 / (1.0 + math.exp(-max(-EXP_CLIP, min(x, EXP_CLIP))))


@vectorize(['float64(float64, float64)'])
def greater_than(a, b):
    return 1.0 if a > b else 0.0


@vectorize(['float64(float64, float64)'])
def less_than(a, b):
    return 1.0 if a < b else 0.0


@vectorize(['float64(float64)'])
def sign(x):
    if x > 0.0:
        return 1.0
    if x < 0.0:
        return -1.0
    return 0.0


@vectorize(['float64(float64, float64, float64)'])
def clip(value, low, high):
    """Clip(value, low, high); ``low`` wins when the bounds cross"""
    return max(low, min(value, high))


@vectorize(['float64(float64, float64)'])
def percent_change(new, old):
    if abs(old) < DIVISION_EPSILON:
        return 0.0
    return (new - old) / old


@vectorize(['float64(float64, float64, float64)'])
def normalize(value, low, high):
    spread = high - low
    if abs(spread) < DIVISION_EPSILON:
        return 0.5
    return (value - low) / spread


@vectorize(['float64(float64, float64, float64)'])
def z_score(value, mean, std):
    if abs(std) < DIVISION_EPSILON:
        return 0.0
    return (value - mean) / std


# Variadic reductions across children, row by row
def _stack(args):
    return np.stack(np.broadcast_arrays(*args))


def children_mean(*args):
    return np.mean(_stack(args), axis=0)


def children_variance(*args):
    return np.var(_stack(args), axis=0)


def children_median(*args):
    return np.median(_stack(args), axis=0)


COMPILE_NAMESPACE: Dict[str, Callable] = {
    '_pdiv': protected_div,
    '_sdiv': safe_div,
    '_psqrt': protected_sqrt,
    '_psin': protected_sin,
    '_pcos': protected_cos,
    '_ptan': protected_tan,
    '_pexp': protected_exp,
    '_plog': protected_log,
    '_psinh': protected_sinh,
    '_pcosh': protected_cosh,
    '_tanh': np.tanh,
    '_sigmoid': sigmoid,
    '_abs': np.abs,
    '_square': np.square,
    '_gt': greater_than,
    '_lt': less_than,
    '_sign': sign,
    '_clip': clip,
    '_pchange': percent_change,
    '_normalize': normalize,
    '_zscore': z_score,
    '_mean': children_mean,
    '_var': children_variance,
    '_median': children_median,
}


class Symbol:
    """A named operation or terminal with fixed arity bounds.

    Behavior is selected by capability rather than subclassing:

    * terminal: ``terminal_kind`` is ``'constant'`` or ``'variable'`` and the
      arity is [0, 0]
    * functional: ``operation`` maps the children's values to a number
    * compilable: ``template`` renders a Python expression from the
      children's expressions. Compilable operations must also accept numpy
      columns in place of scalars; evaluation over a whole dataset relies on it.

    Everything except ``enabled`` is fixed at construction.
    """

    CONSTANT = 'constant'
    VARIABLE = 'variable'

    def __init__(self, name: str, min_arity: int, max_arity: int,
                 operation: Optional[Operation] = None,
                 template: Optional[Template] = None,
                 terminal_kind: Optional[str] = None,
                 description: str = '',
                 initial_frequency: float = 1.0,
                 value_range: Tuple[float, float] = CONSTANT_RANGE,
                 enabled: bool = True):
        if min_arity < 0 or max_arity < min_arity:
            raise ValueError(f"Invalid arity bounds [{min_arity}, {max_arity}] for '{name}'")
        if terminal_kind is not None:
            if terminal_kind not in (self.CONSTANT, self.VARIABLE):
                raise ValueError(f"Unknown terminal kind: {terminal_kind}")
            if max_arity != 0:
                raise ValueError(f"Terminal symbol '{name}' must have arity [0, 0]")
        self._name = name
        self._min_arity = min_arity
        self._max_arity = max_arity
        self._operation = operation
        self._template = template
        self._terminal_kind = terminal_kind
        self._description = description
        self._initial_frequency = initial_frequency
        self._value_range = value_range
        self.enabled = enabled

    @property
    def name(self) -> str:
        return self._name

    @property
    def description(self) -> str:
        return self._description

    @property
    def min_arity(self) -> int:
        return self._min_arity

    @property
    def max_arity(self) -> int:
        return self._max_arity

    @property
    def initial_frequency(self) -> float:
        return self._initial_frequency

    @property
    def value_range(self) -> Tuple[float, float]:
        return self._value_range

    @property
    def terminal_kind(self) -> Optional[str]:
        return self._terminal_kind

    @property
    def is_terminal(self) -> bool:
        return self._max_arity == 0

    @property
    def is_constant(self) -> bool:
        return self._terminal_kind == self.CONSTANT

    @property
    def is_variable(self) -> bool:
        return self._terminal_kind == self.VARIABLE

    @property
    def is_functional(self) -> bool:
        return self._operation is not None

    @property
    def is_compilable(self) -> bool:
        return self._template is not None

    def accepts_arity(self, count: int) -> bool:
        return self._min_arity <= count <= self._max_arity

    def evaluate(self, child_values: Sequence[float]) -> float:
        if self._operation is None:
            raise TypeError(f"Symbol '{self._name}' has no numeric operation")
        return self._operation(child_values)

    def emit(self, child_expressions: Sequence[str]) -> str:
        """Render this symbol as a Python expression over its children's expressions"""
        if self._template is None:
            raise TypeError(f"Symbol '{self._name}' is not compilable")
        if callable(self._template):
            return self._template(child_expressions)
        return self._template.format(*child_expressions)

    def __repr__(self):
        return f"Symbol({self._name!r}, [{self._min_arity}, {self._max_arity}])"


# Factories

def call_template(alias: str) -> Callable[[Sequence[str]], str]:
    """Template calling a COMPILE_NAMESPACE entry with every child expression"""
    return lambda children: f"{alias}({', '.join(children)})"


def binary(name: str, function: Callable[[float, float], float],
           template: Optional[Template] = None, description: str = '') -> Symbol:
    return Symbol(name, 2, 2, operation=lambda args: function(args[0], args[1]),
                  template=template, description=description)


def unary(name: str, function: Callable[[float], float],
          template: Optional[Template] = None, description: str = '') -> Symbol:
    return Symbol(name, 1, 1, operation=lambda args: function(args[0]),
                  template=template, description=description)


def ternary(name: str, function: Callable[[float, float, float], float],
            template: Optional[Template] = None, description: str = '') -> Symbol:
    return Symbol(name, 3, 3, operation=lambda args: function(args[0], args[1], args[2]),
                  template=template, description=description)


def variadic(name: str, function: Operation, min_arity: int = 1,
             max_arity: int = MAX_VARIADIC_ARITY, template: Optional[Template] = None,
             description: str = '') -> Symbol:
    return Symbol(name, min_arity, max_arity, operation=function,
                  template=template, description=description)


def variable_symbol(name: str) -> Symbol:
    return Symbol(name, 0, 0, terminal_kind=Symbol.VARIABLE,
                  template=f"variables[{name!r}]",
                  description=f"Input variable {name}")


def constant_symbol(name: str = 'Constant',
                    value_range: Tuple[float, float] = CONSTANT_RANGE) -> Symbol:
    return Symbol(name, 0, 0, terminal_kind=Symbol.CONSTANT,
                  value_range=value_range, description="Numeric constant")


# Standard sets. Each call builds fresh symbols so that enabling or disabling
# a symbol in one grammar never leaks into another.

def basic_math_symbols() -> List[Symbol]:
    return [
        binary('Addition', lambda a, b: a + b, "({0} + {1})", "Addition (+)"),
        binary('Subtraction', lambda a, b: a - b, "({0} - {1})", "Subtraction (-)"),
        binary('Multiplication', lambda a, b: a * b, "({0} * {1})", "Multiplication (*)"),
        binary('ProtectedDivision', protected_div, call_template('_pdiv'),
               "Division returning 0 for near-zero denominators"),
    ]


def extended_math_symbols() -> List[Symbol]:
    return [
        unary('Abs', np.abs, call_template('_abs'), "Absolute value"),
        unary('Square', np.square, call_template('_square'), "x squared"),
        unary('SquareRoot', protected_sqrt, call_template('_psqrt'),
              "Square root, 0 for negative input"),
        binary('SafeDivision', safe_div, call_template('_sdiv'),
               "Division returning the largest float for near-zero denominators"),
    ]


def advanced_math_symbols() -> List[Symbol]:
    return [
        unary('Sine', protected_sin, call_template('_psin'), "Sine"),
        unary('Cosine', protected_cos, call_template('_pcos'), "Cosine"),
        unary('Exponential', protected_exp, call_template('_pexp'),
              "Exponential, clipped against overflow"),
        unary('Logarithm', protected_log, call_template('_plog'), "Natural log of |x|, 0 near zero"),
    ]


def trigonometric_symbols() -> List[Symbol]:
    return [
        unary('Tangent', protected_tan, call_template('_ptan'), "Tangent"),
        unary('HyperbolicSine', protected_sinh, call_template('_psinh'), "Hyperbolic sine"),
        unary('HyperbolicCosine', protected_cosh, call_template('_pcosh'), "Hyperbolic cosine"),
        unary('HyperbolicTangent', np.tanh, call_template('_tanh'), "Hyperbolic tangent"),
        unary('Sigmoid', sigmoid, call_template('_sigmoid'), "Logistic function 1 / (1 + e^-x)"),
    ]


def comparison_symbols() -> List[Symbol]:
    return [
        binary('GreaterThan', greater_than, call_template('_gt'), "1 if a > b, else 0"),
        binary('LessThan', less_than, call_template('_lt'), "1 if a < b, else 0"),
        unary('Sign', sign, call_template('_sign'), "Sign of x (-1, 0, +1)"),
    ]


def bounding_symbols() -> List[Symbol]:
    return [
        ternary('Clip', clip, call_template('_clip'), "Clip(value, min, max)"),
        unary('SoftClip', np.tanh, call_template('_tanh'), "Soft clipping via tanh"),
    ]


def ratio_symbols() -> List[Symbol]:
    return [
        binary('PercentChange', percent_change, call_template('_pchange'),
               "(new - old) / old, 0 for a zero base"),
        ternary('Normalize', normalize, call_template('_normalize'),
                "Min-max normalization (x - min) / (max - min)"),
        ternary('ZScore', z_score, call_template('_zscore'), "(x - mean) / std"),
    ]


def statistics_symbols() -> List[Symbol]:
    return [
        variadic('Mean', lambda args: children_mean(*args), template=call_template('_mean'),
                 description="Mean of the children"),
        variadic('Variance', lambda args: children_variance(*args), template=call_template('_var'),
                 description="Population variance of the children"),
        variadic('Median', lambda args: children_median(*args), template=call_template('_median'),
                 description="Median of the children"),
    ]


SYMBOL_SETS: Dict[str, Callable[[], List[Symbol]]] = {
    'basic': basic_math_symbols,
    'extended': extended_math_symbols,
    'advanced': advanced_math_symbols,
    'trigonometric': trigonometric_symbols,
    'comparison': comparison_symbols,
    'bounding': bounding_symbols,
    'ratio': ratio_symbols,
    'statistics': statistics_symbols,
}
