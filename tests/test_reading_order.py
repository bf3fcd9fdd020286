from itertools import permutations

from vision_server.models.geometry import BoundingBox
from vision_server.models.observations import TextObservation
from vision_server.services.reading_order import group_lines, reconstruct


def fragment(text, x, y, w=0.20, h=0.05):
    return TextObservation(
        text=text,
        confidence=0.9,
        bounding_box=BoundingBox(x=x, y=y, width=w, height=h),
    )


HELLO = fragment("Hello", 0.10, 0.90)
WORLD = fragment("World", 0.35, 0.90)
NEXT = fragment("Next", 0.10, 0.60)


def test_empty_input():
    assert reconstruct([]) == ""


def test_single_fragment():
    assert reconstruct([HELLO]) == "Hello"


def test_single_line_joined_left_to_right():
    assert reconstruct([HELLO, WORLD]) == "Hello World"
    assert reconstruct([WORLD, HELLO]) == "Hello World"


def test_large_gap_is_paragraph_break():
    assert reconstruct([HELLO, WORLD, NEXT]) == "Hello World\n\nNext"


def test_result_does_not_depend_on_input_order():
    assert reconstruct([NEXT, WORLD, HELLO]) == reconstruct([HELLO, WORLD, NEXT])


def test_small_gap_is_line_break():
    below = fragment("below", 0.10, 0.83)
    assert reconstruct([HELLO, below]) == "Hello\nbelow"


def test_slightly_misaligned_fragments_share_a_line():
    lower = fragment("there", 0.40, 0.89)
    assert reconstruct([lower, HELLO]) == "Hello there"


def test_group_lines_top_to_bottom():
    lines = group_lines([NEXT, HELLO, WORLD])
    assert [[obs.text for obs in line] for line in lines] == [["Hello", "World"], ["Next"]]


def test_equal_y_different_heights_independent_of_order():
    short = fragment("A", 0.10, 0.50, h=0.01)
    tall = fragment("B", 0.40, 0.50, h=0.20)
    below = fragment("C", 0.70, 0.45)

    results = {reconstruct(list(order)) for order in permutations([short, tall, below])}

    assert results == {"A B C"}


def test_same_position_taller_fragment_leads_line():
    short = fragment("A", 0.10, 0.50, h=0.01)
    tall = fragment("B", 0.10, 0.50, h=0.20)
    below = fragment("C", 0.10, 0.45)

    results = {reconstruct(list(order)) for order in permutations([short, tall, below])}

    assert results == {"B A\nC"}
