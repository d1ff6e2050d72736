"""Load number generation and collision handling."""

import pytest

from freightboard.middleware.exceptions import LoadNumberExhaustedError
from freightboard.utils import numbering


@pytest.mark.unit
class TestFormat:
    def test_keeps_last_six_millis_digits(self):
        assert numbering.format_load_number(1712345678901, "qx2a") == "LD678901QX2A"

    def test_pads_short_clock(self):
        assert numbering.format_load_number(42, "AB12") == "LD000042AB12"


@pytest.mark.unit
@pytest.mark.asyncio
class TestGenerate:
    async def test_regenerates_until_free(self, monkeypatch):
        suffixes = iter(["AAAA", "BBBB", "CCCC"])
        checked = []

        async def exists(db, code):
            checked.append(code)
            return code[-4:] in {"AAAA", "BBBB"}

        monkeypatch.setattr(numbering, "_random_suffix", lambda: next(suffixes))
        monkeypatch.setattr(numbering, "_exists", exists)

        code = await numbering.generate_load_number(None)
        assert code.endswith("CCCC")
        assert len(checked) == 3
        assert checked[-1] == code

    async def test_every_attempt_collides(self, monkeypatch):
        checked = []

        async def always_taken(db, code):
            checked.append(code)
            return True

        monkeypatch.setattr(numbering, "_exists", always_taken)

        with pytest.raises(LoadNumberExhaustedError) as exc_info:
            await numbering.generate_load_number(None)
        assert exc_info.value.error_code == "LOAD_NUMBER_UNAVAILABLE"
        assert exc_info.value.status_code == 503
        assert len(checked) == numbering.MAX_ATTEMPTS
