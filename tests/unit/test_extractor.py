"""
Unit tests for Code Extractor

Tests the structured marker rule and the 6-digit fallback heuristic.
"""

import pytest

from mailcode.core.extractor import extract_verification_code


class TestStructuredMarker:
    """Test the <div class="code"> rule"""

    def test_plain_marker(self):
        """Marker with a plain = in the class attribute"""
        text = '<p>Hello</p><div class="code">148885</div>'
        assert extract_verification_code(text) == "148885"

    def test_quoted_printable_marker(self):
        """Marker still carrying quoted-printable =3D"""
        text = '...<div class=3D"code">148885</div>...'
        assert extract_verification_code(text) == "148885"

    def test_marker_with_extra_attributes(self):
        """Extra attributes after the class are allowed"""
        text = '<div class="code" style="font-size:24px">4821</div>'
        assert extract_verification_code(text) == "4821"

    @pytest.mark.parametrize("code", ["1234", "12345678"])
    def test_marker_length_bounds(self, code):
        """Marker accepts 4 to 8 digits"""
        assert extract_verification_code(f'<div class="code">{code}</div>') == code

    def test_marker_too_long_falls_through(self):
        """9 digits in the marker are not a marker match"""
        assert extract_verification_code('<div class="code">123456789</div>') is None

    def test_marker_wins_over_bare_number(self):
        """Structured marker beats an earlier bare 6-digit number"""
        text = 'Ref 314159 <div class="code">148885</div>'
        assert extract_verification_code(text) == "148885"

    def test_marker_starting_with_20_is_kept(self):
        """The year heuristic only applies to the fallback"""
        assert extract_verification_code('<div class="code">205000</div>') == "205000"


class TestNumericFallback:
    """Test the 6-digit fallback heuristic"""

    def test_standalone_six_digits(self):
        """A bare 6-digit run is accepted"""
        assert extract_verification_code("Your code is 731942.") == "731942"

    def test_rejects_leading_20(self):
        """Runs starting with 20 look like years and are rejected"""
        assert extract_verification_code("Transaction 205000 done") is None

    def test_rejects_all_zeros(self):
        """000000 is never a code"""
        assert extract_verification_code("000000") is None

    def test_skips_rejected_candidates(self):
        """First acceptable candidate after rejected ones wins"""
        text = "Sent 202501 ref 000000 code 583920 other 612345"
        assert extract_verification_code(text) == "583920"

    def test_ignores_longer_runs(self):
        """Digits inside a longer run are not standalone"""
        assert extract_verification_code("Order 12345678 shipped") is None

    def test_ignores_digits_glued_to_letters(self):
        """Word boundaries are required on both sides"""
        assert extract_verification_code("id=x583920y") is None

    def test_no_digits(self):
        """Text without numbers yields nothing"""
        assert extract_verification_code("Welcome aboard!") is None

    def test_empty_text(self):
        """Empty text yields nothing"""
        assert extract_verification_code("") is None

    def test_deterministic(self):
        """Same input, same output"""
        text = "Code: 583920"
        assert extract_verification_code(text) == extract_verification_code(text)
