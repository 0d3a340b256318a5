import math
import sys
from pathlib import Path

import pytest

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from clickseg.errors import InvalidPointError
from clickseg.prompt_accumulator import PromptAccumulator
from clickseg.session_types import Point, PointType


def test_points_keep_insertion_order():
    prompts = PromptAccumulator(800, 600)
    p1 = prompts.add_point(10, 20, PointType.POSITIVE)
    p2 = prompts.add_point(700, 500, PointType.NEGATIVE)
    p3 = prompts.add_point(10, 20, PointType.POSITIVE)

    assert prompts.current_prompts() == (p1, p2, p3)
    assert prompts.labels() == (1, 0, 1)
    assert p2 == Point(700.0, 500.0, PointType.NEGATIVE)


def test_snapshot_is_not_affected_by_later_points():
    prompts = PromptAccumulator(10, 10)
    prompts.add_point(1, 1)
    snapshot = prompts.current_prompts()
    prompts.add_point(2, 2)
    assert len(snapshot) == 1
    assert len(prompts) == 2


@pytest.mark.parametrize(
    "x, y",
    [(-5, 10), (800, 10), (10, 600), (10, -0.5), (math.nan, 1), (1, math.inf), ("3", 4), (None, 1)],
)
def test_rejects_invalid_coordinates_without_mutation(x, y):
    prompts = PromptAccumulator(800, 600)
    prompts.add_point(1, 1)
    with pytest.raises(InvalidPointError):
        prompts.add_point(x, y, PointType.POSITIVE)
    assert len(prompts) == 1


def test_edges_inside_bounds_are_accepted():
    prompts = PromptAccumulator(800, 600)
    prompts.add_point(0, 0)
    prompts.add_point(799.9, 599.9)
    assert len(prompts) == 2


def test_point_type_coercion():
    prompts = PromptAccumulator(5, 5)
    assert prompts.add_point(1, 1, 0).type is PointType.NEGATIVE
    assert prompts.add_point(1, 1, "positive").type is PointType.POSITIVE
    with pytest.raises(InvalidPointError):
        prompts.add_point(1, 1, "sideways")
    with pytest.raises(InvalidPointError):
        prompts.add_point(1, 1, 7)


def test_reset_and_pop_last():
    prompts = PromptAccumulator(5, 5)
    prompts.add_point(1, 1)
    last = prompts.add_point(2, 2, PointType.NEGATIVE)
    assert prompts.pop_last() == last
    prompts.reset()
    assert prompts.current_prompts() == ()
    assert prompts.pop_last() is None
