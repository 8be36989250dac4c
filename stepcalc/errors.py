"""Error taxonomy for StepCalc.

Every engine-level operation catches these at its own boundary and turns
them into the ``error`` field of a CalculationResult. Only the CLI and the
remote solver client let them surface directly.
"""


class CalculatorError(Exception):
    """Base class for calculator failures."""

    code = "calculator"

    def __init__(self, message: str, code: str = None):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code

    def __str__(self) -> str:
        return self.message


class EvaluationError(CalculatorError):
    """Malformed or undefined numeric expression."""

    code = "evaluation"


class SymbolicError(CalculatorError):
    """The symbolic backend cannot differentiate, integrate or solve the form."""

    code = "symbolic"


class DimensionError(CalculatorError):
    """Matrix shape precondition violated."""

    code = "dimension"


class MissingOperandError(CalculatorError):
    """Binary matrix operation called without its second operand."""

    code = "missing_operand"


class RangeError(CalculatorError):
    """Graph domain is empty, inverted or non-finite."""

    code = "range"


class ServiceError(CalculatorError):
    """Remote problem solver unreachable or rejected the request."""

    code = "service"
