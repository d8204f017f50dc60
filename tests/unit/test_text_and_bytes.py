"""
Unit tests for text and byte processing utilities.
"""

import array

import pytest
from collabtex.utils.byte_processing import decode_text, encode_source, to_bytes
from collabtex.utils.text_processing import (
    collapse_whitespace,
    count_words,
    extract_balanced_delimiters,
    truncate_display,
)
from collabtex.utils.timestamp import clock_time, long_date


class TestExtractBalancedDelimiters:
    """Tests for extract_balanced_delimiters function."""

    @pytest.mark.unit
    def test_nested(self):
        content, end = extract_balanced_delimiters('foo {bar {nested} baz} qux', 5)

        assert content == 'bar {nested} baz'
        assert end == 22

    @pytest.mark.unit
    def test_escaped_brace_ignored(self):
        """Test \\} inside the group does not close it."""
        content, _ = extract_balanced_delimiters(r'{a \} b}', 1)
        assert content == r'a \} b'

    @pytest.mark.unit
    def test_custom_delimiters(self):
        content, _ = extract_balanced_delimiters('[x [y]]', 1, '[', ']')
        assert content == 'x [y]'

    @pytest.mark.unit
    def test_unmatched(self):
        with pytest.raises(ValueError):
            extract_balanced_delimiters('{open', 1)


class TestTextHelpers:
    """Tests for display and counting helpers."""

    @pytest.mark.unit
    def test_truncate_display(self):
        assert truncate_display('  short  ', 10) == 'short'
        assert truncate_display('abcdefghij', 4) == 'abcd...'

    @pytest.mark.unit
    def test_count_words(self):
        counts = count_words('Hello  LaTeX\nworld')

        assert counts.words == 3
        assert counts.characters == 18

    @pytest.mark.unit
    def test_count_words_empty(self):
        assert count_words('   ') == (0, 3)

    @pytest.mark.unit
    def test_collapse_whitespace_keeps_edges(self):
        """Test runs collapse to one space; leading/trailing space is kept."""
        assert collapse_whitespace('\n a \t\n b ') == ' a b '


class TestByteProcessing:
    """Tests for payload normalization."""

    @pytest.mark.unit
    @pytest.mark.parametrize(
        'payload',
        [b'%PDF', bytearray(b'%PDF'), memoryview(b'%PDF'), array.array('B', b'%PDF')],
        ids=['bytes', 'bytearray', 'memoryview', 'array'],
    )
    def test_to_bytes(self, payload):
        assert to_bytes(payload) == b'%PDF'

    @pytest.mark.unit
    def test_text_is_not_binary(self):
        assert to_bytes('%PDF') is None
        assert to_bytes(None) is None
        assert to_bytes(42) is None

    @pytest.mark.unit
    def test_tobytes_duck_typing(self):
        class Buffer:
            def tobytes(self):
                return b'raw'

        assert to_bytes(Buffer()) == b'raw'

    @pytest.mark.unit
    def test_encode_source(self):
        assert encode_source('é') == 'é'.encode('utf-8')
        assert encode_source(b'x') == b'x'
        with pytest.raises(TypeError):
            encode_source(3.5)

    @pytest.mark.unit
    def test_decode_text(self):
        assert decode_text(b'ok') == 'ok'
        assert decode_text(['a', None, b'b']) == 'a\nb'
        assert decode_text(None) is None


class TestTimestamp:
    @pytest.mark.unit
    def test_long_date_day_not_padded(self):
        from datetime import datetime

        assert long_date(datetime(2026, 3, 5)) == 'March 5, 2026'

    @pytest.mark.unit
    def test_clock_time(self):
        from datetime import datetime

        assert clock_time(datetime(2026, 1, 1, 9, 5, 7)) == '09:05:07'
