"""exprcheck - differential evaluation harness for an expression engine.

Runs an expression through the interpreter, three generated-code paths and
the optimizer, and reports the first backend that disagrees with the
expected value.

Use explicit imports: `from exprcheck.evaluation import assert_evaluation`
"""

__version__ = "0.1.0"
