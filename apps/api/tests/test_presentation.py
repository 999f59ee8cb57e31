import pytest

from app.utils.presentation import humanize_identifier


@pytest.mark.parametrize(
    "value,expected",
    [
        ("vision_impact_scale", "Vision Impact Scale"),
        ("premium-iol-interest", "Premium IOL Interest"),
        ("ready_for_surgery", "Ready for Surgery"),
        ("for_the_record", "For the Record"),
        ("Already Labelled", "Already Labelled"),
        ("  spaced__out  ", "Spaced Out"),
        ("", ""),
        (None, ""),
    ],
)
def test_humanize_identifier(value, expected):
    assert humanize_identifier(value) == expected
