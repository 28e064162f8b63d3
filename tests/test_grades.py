import pytest

from grading.grades import compute_grade


@pytest.mark.parametrize("percentage, grade", [
    (100, "A+"),
    (90, "A+"),
    (89.999, "A"),
    (85, "A"),
    (84.9, "B+"),
    (80, "B+"),
    (75, "B"),
    (74.99, "C+"),
    (70, "C+"),
    (60, "C"),
    (59.5, "D"),
    (50, "D"),
    (49.99, "F"),
    (0, "F"),
])
def test_grade_bands(percentage, grade):
    assert compute_grade(percentage) == grade
