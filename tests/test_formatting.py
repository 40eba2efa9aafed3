import pytest

from nvrmon.utils.formatting import fmt_elapsed, fmt_eta, fmt_rate, fmt_size


def test_fmt_size():
    assert fmt_size(0) == "0.0 B"
    assert fmt_size(1536) == "1.5 KiB"
    assert fmt_size(5 * 1024**3) == "5.0 GiB"
    assert fmt_size(None) == "0 B"


def test_fmt_rate():
    assert fmt_rate(None) == "—"
    assert fmt_rate(0) == "—"
    assert fmt_rate(2 * 1024 * 1024) == "2.0 MiB/s"


@pytest.mark.parametrize(
    "remaining,rate,expected",
    [
        (100, None, "—"),
        (None, 10, "—"),
        (0, 10, "0s"),
        (450, 10, "45s"),
        (1500, 10, "2m 30s"),
        (1200, 10, "2m"),
        (39000, 10, "1h 5m"),
        (36000, 10, "1h"),
    ],
)
def test_fmt_eta(remaining, rate, expected):
    assert fmt_eta(remaining, rate) == expected


def test_fmt_elapsed():
    assert fmt_elapsed(0) == "0:00"
    assert fmt_elapsed(59) == "0:59"
    assert fmt_elapsed(3600) == "1:00:00"
    assert fmt_elapsed(-3) == "0:00"
