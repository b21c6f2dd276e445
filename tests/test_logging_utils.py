import logging
from fractions import Fraction

import numpy as np
import z3

from geodiagram.logging_utils import _safe_repr, apply_debug_logging, debug_log_call


def test_safe_repr_summarizes_heavy_values():
    x = z3.Real("vertex_A_x")

    assert _safe_repr(np.zeros((3, 2))).startswith("ndarray(shape=(3, 2)")
    assert _safe_repr(x * x + 1).startswith("z3<")
    assert _safe_repr(Fraction(1, 4)) == "1/4"
    assert _safe_repr(list(range(10))).endswith("... (+5)]")


def test_long_expressions_are_truncated():
    xs = [z3.Real(f"v{i}") for i in range(60)]

    text = _safe_repr(z3.Sum(xs))

    assert text.endswith("...>")
    assert len(text) < 140


def test_debug_log_call_traces_only_at_debug(caplog):
    logger = logging.getLogger("geodiagram.tests.trace")

    @debug_log_call(logger)
    def double(value):
        return value * 2

    with caplog.at_level(logging.INFO, logger=logger.name):
        assert double(2) == 4
    assert caplog.text == ""

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        assert double(3) == 6
    assert "Entering" in caplog.text and "double" in caplog.text
    assert "Exiting" in caplog.text and "-> 6" in caplog.text


def test_apply_debug_logging_wraps_module_members(caplog):
    logger = logging.getLogger("geodiagram.tests.module")

    def helper(a, b=1):
        return a + b

    class Builder:
        def build(self):
            return "built"

    helper.__module__ = "fake_module"
    Builder.__module__ = "fake_module"
    Builder.build.__module__ = "fake_module"
    namespace = {"__name__": "fake_module", "helper": helper, "Builder": Builder, "np": np}

    apply_debug_logging(namespace, logger=logger, skip=["Builder.skip_me"])

    with caplog.at_level(logging.DEBUG, logger=logger.name):
        assert namespace["helper"](1, b=2) == 3
        assert Builder().build() == "built"

    assert "Entering helper (1, b=2)" in caplog.text
    assert "Entering Builder.build" in caplog.text
    assert namespace["np"] is np
