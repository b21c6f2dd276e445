from __future__ import annotations

from fractions import Fraction

import pytest

from geodiagram.errors import ModelExtractionError, UnsatisfiableConstraints
from geodiagram.solver import anchor_positions, parse_model_number
from geodiagram.solver.utils import cos_sign, cos_squared_fraction, exact_fraction


@pytest.mark.parametrize(
    'text, expected',
    [
        ('1.25', 1.25),
        ('-3/4', -0.75),
        ('1.4142135623?', 1.4142135623),
        ('  7 ', 7.0),
        ('10/4', 2.5),
    ],
)
def test_parse_model_number(text, expected):
    assert parse_model_number(text) == pytest.approx(expected)


@pytest.mark.parametrize('text', ['', '?', 'abc', '1/0', 'inf', '(root-obj x 1)'])
def test_parse_model_number_rejects_garbage(text):
    with pytest.raises(ModelExtractionError) as exc:
        parse_model_number(text, variable='vertex_A_x')

    assert exc.value.variable == 'vertex_A_x'


def test_common_angles_have_exact_cosines():
    assert cos_squared_fraction(90) == 0
    assert cos_squared_fraction(60) == Fraction(1, 4)
    assert cos_squared_fraction(45) == Fraction(1, 2)
    assert cos_squared_fraction(180) == 1
    assert cos_sign(90) == 0
    assert cos_sign(120) == -1
    assert cos_sign(300) == 1


def test_exact_fraction_keeps_decimal_value():
    assert exact_fraction(0.1) == Fraction(1, 10)
    assert exact_fraction(12) == 12


def test_anchor_positions_translates_everything():
    raw = {'vertex_A': (1.5, -2.0), 'vertex_B': (11.5, -2.0)}

    anchored = anchor_positions(raw, 'vertex_A', (40.0, 40.0))

    assert anchored == {'vertex_A': (40.0, 40.0), 'vertex_B': (50.0, 40.0)}


def test_anchor_positions_requires_anchor():
    with pytest.raises(ModelExtractionError):
        anchor_positions({'vertex_B': (0.0, 0.0)}, 'vertex_A', (40.0, 40.0))


def test_unsat_error_carries_status():
    err = UnsatisfiableConstraints('undecided', status='unknown')

    assert err.status == 'unknown'
    assert str(err) == 'undecided'
