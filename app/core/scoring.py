"""
Scoring Helpers

Integer percentages shared by progress tracking, quiz grading and the
models that expose them.
"""


def rounded_percentage(part: int, whole: int) -> int:
    """
    ``part`` as a whole-number percentage of ``whole``.

    Rounds half up and clamps to 0..100. A ``whole`` of 0 (a course
    without lessons, a quiz without points) is 0%.
    """
    if whole <= 0:
        return 0
    percentage = (200 * part + whole) // (2 * whole)
    return max(0, min(percentage, 100))
