"""
Step 3: Grade Calculator

Maps a percentage to a letter grade. Thresholds are inclusive lower bounds,
checked from the top down.
"""

GRADE_BANDS = (
    (90, "A+"),
    (85, "A"),
    (80, "B+"),
    (75, "B"),
    (70, "C+"),
    (60, "C"),
    (50, "D"),
)
FAILING_GRADE = "F"


def compute_grade(percentage: float) -> str:
    for threshold, grade in GRADE_BANDS:
        if percentage >= threshold:
            return grade
    return FAILING_GRADE
