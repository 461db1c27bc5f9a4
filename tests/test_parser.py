import codecs
import tempfile
import unittest
from pathlib import Path

from tessera.parser import (
    detect_delimiter,
    detect_encoding_info,
    load_file,
    load_table,
    parse_text,
    split_lines,
    tokenize_line,
)


class DelimiterDetectionTests(unittest.TestCase):
    def test_semicolon_wins_when_strictly_more_frequent(self):
        self.assertEqual(detect_delimiter("Name;Age;Active"), ";")

    def test_tie_favours_comma(self):
        self.assertEqual(detect_delimiter("a;b,c"), ",")

    def test_delimiters_inside_quotes_are_ignored(self):
        self.assertEqual(detect_delimiter('"a;b;c",d'), ",")
        self.assertEqual(detect_delimiter('"x,y,z";a;b'), ";")


class TokenizeLineTests(unittest.TestCase):
    def test_doubled_quotes_inside_quoted_field(self):
        self.assertEqual(tokenize_line('x,"a,""b"",c",y', ","), ["x", 'a,"b",c', "y"])

    def test_whitespace_and_empty_fields_are_preserved(self):
        self.assertEqual(tokenize_line(" a , b ,", ","), [" a ", " b ", ""])

    def test_final_field_emitted_without_trailing_delimiter(self):
        self.assertEqual(tokenize_line("1;2;3", ";"), ["1", "2", "3"])

    def test_unterminated_quote_keeps_rest_of_line(self):
        self.assertEqual(tokenize_line('a,"b,c', ","), ["a", "b,c"])


class ParseTextTests(unittest.TestCase):
    def test_parses_semicolon_file_and_drops_blank_lines(self):
        table = parse_text("Name;Age;Active\nAlice;30;true\n\n   \nBob;25;false\n\n")

        self.assertEqual(table.columns, ["Name", "Age", "Active"])
        self.assertEqual(len(table.rows), 2)
        self.assertEqual(table.rows[0].cells[0], "Alice")
        self.assertEqual(table.rows[1].cells[2], "false")

    def test_empty_and_whitespace_input_yield_empty_table(self):
        for text in ("", "   \n\t\n", "\r\n"):
            table = parse_text(text)
            self.assertEqual(table.columns, [])
            self.assertEqual(table.rows, [])

    def test_empty_header_cell_becomes_empty_name(self):
        table = parse_text(",b\n1,2\n")
        self.assertEqual(table.columns, ["", "b"])

    def test_crlf_line_endings(self):
        self.assertEqual(split_lines("a,b\r\n1,2\r\n"), ["a,b", "1,2"])

    def test_short_rows_are_kept_as_is(self):
        table = parse_text("a,b,c\n1\n")
        self.assertEqual(table.rows[0].cells, ["1"])


class LoadFileTests(unittest.TestCase):
    def write(self, tmpdir: str, name: str, payload: bytes) -> Path:
        path = Path(tmpdir) / name
        path.write_bytes(payload)
        return path

    def test_utf8_bom_is_stripped_from_first_header(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write(tmpdir, "bom.csv", codecs.BOM_UTF8 + b"Name,Age\nAlice,30\n")
            table = load_table(path)

        self.assertEqual(table.columns, ["Name", "Age"])

    def test_utf16_with_bom_is_decoded(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write(tmpdir, "wide.csv", "Name;Age\nZoë;30\n".encode("utf-16"))
            result = load_file(path)

        self.assertEqual(result["table"].columns, ["Name", "Age"])
        self.assertEqual(result["table"].rows[0].cells[0], "Zoë")
        self.assertEqual(result["delimiter"], ";")
        self.assertIsNotNone(result["encoding_info"]["bom"])

    def test_load_file_infers_schema_and_converts_records(self):
        with tempfile.TemporaryDirectory() as tmpdir:
            path = self.write(tmpdir, "people.csv", b"Name,Age\nAlice,30\nBob\n")
            result = load_file(path)

        self.assertEqual(result["schema"].get("Age").inferred_type.value, "Int")
        self.assertEqual(result["records"], [{"Name": "Alice", "Age": 30}, {"Name": "Bob", "Age": None}])
        self.assertEqual(result["original_rows"], 3)
        self.assertTrue(any("fewer cells" in warning for warning in result["warnings"]))

    def test_missing_file_raises(self):
        with self.assertRaises(FileNotFoundError):
            load_file("/nonexistent/tessera/input.csv")

    def test_plain_ascii_is_reported_as_utf8_compatible(self):
        info = detect_encoding_info(b"a,b\n1,2\n")
        self.assertTrue(info["is_utf8"])
        self.assertEqual(info["suspicious_chars"], [])


if __name__ == "__main__":
    unittest.main()
