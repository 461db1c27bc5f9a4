import unittest
from datetime import datetime, timezone

from tessera.inference import (
    SAMPLE_LIMIT,
    infer_column,
    infer_data_type,
    infer_schema,
    infer_schema_from_records,
    parse_bool,
    parse_date,
    parse_float,
    parse_int,
    refresh_statistics,
)
from tessera.models import DataType, Table
from tessera.parser import parse_text


class ParseRuleTests(unittest.TestCase):
    def test_int_rule(self):
        self.assertEqual(parse_int(" -42 "), -42)
        self.assertIsNone(parse_int("1.0"))
        self.assertIsNone(parse_int("1,000"))
        self.assertIsNone(parse_int("99999999999999999999"))

    def test_int_rule_rejects_digit_runs_past_the_conversion_limit(self):
        self.assertIsNone(parse_int("1" * 5000))

    def test_huge_digit_run_infers_as_string_without_raising(self):
        text = "Id\n" + "1" * 5000 + "\n"
        schema = infer_schema(parse_text(text))
        self.assertEqual(schema[0].inferred_type, DataType.STRING)

    def test_float_rule(self):
        self.assertEqual(parse_float("10.5"), 10.5)
        self.assertEqual(parse_float("1e3"), 1000.0)
        self.assertEqual(parse_float("1,234.5"), 1234.5)
        self.assertEqual(parse_float("88,9"), 88.9)
        self.assertEqual(parse_float("1,234"), 1234.0)
        self.assertIsNone(parse_float("nan"))
        self.assertIsNone(parse_float("inf"))
        self.assertIsNone(parse_float("12abc"))

    def test_bool_rule(self):
        self.assertIs(parse_bool("TRUE"), True)
        self.assertIs(parse_bool(" false "), False)
        self.assertIsNone(parse_bool("yes"))
        self.assertIsNone(parse_bool("1"))

    def test_date_rule(self):
        self.assertEqual(parse_date("2023-01-05"), datetime(2023, 1, 5, tzinfo=timezone.utc))
        self.assertEqual(parse_date("01/05/2023"), datetime(2023, 1, 5, tzinfo=timezone.utc))
        self.assertEqual(parse_date("2023-01-05T10:30:00Z"), datetime(2023, 1, 5, 10, 30, tzinfo=timezone.utc))
        self.assertEqual(parse_date("Jan 5, 2023"), datetime(2023, 1, 5, tzinfo=timezone.utc))
        self.assertIsNone(parse_date("Alice"))
        self.assertIsNone(parse_date("May"))
        self.assertIsNone(parse_date("42"))


class SchemaInferenceTests(unittest.TestCase):
    def test_infers_basic_types(self):
        table = Table.from_lists(
            ["Id", "Value", "Flag"],
            [
                ["1", "10.5", "true"],
                ["2", "11.0", "false"],
                ["3", None, "true"],
            ],
        )

        schema = infer_schema(table)

        self.assertEqual(schema[0].inferred_type, DataType.INT)
        self.assertEqual(schema[1].inferred_type, DataType.FLOAT)
        self.assertTrue(schema[1].is_nullable)
        self.assertFalse(schema[0].is_nullable)
        self.assertEqual(schema[2].inferred_type, DataType.BOOL)
        self.assertEqual(schema[0].distinct_count, 3)
        self.assertIn("10.5", schema[1].sample_values)

    def test_prefers_integers_over_floats_when_all_values_whole(self):
        schema = infer_schema(Table.from_lists(["Count"], [["10"], ["20"]]))
        self.assertEqual(schema[0].inferred_type, DataType.INT)

    def test_type_precedence(self):
        self.assertEqual(infer_data_type(["1", "0"]), DataType.INT)
        self.assertEqual(infer_data_type(["1", "0.5"]), DataType.FLOAT)
        self.assertEqual(infer_data_type(["true", "False"]), DataType.BOOL)
        self.assertEqual(infer_data_type(["2023-01-05", "2023-02-10"]), DataType.DATE)
        self.assertEqual(infer_data_type(["1", "abc"]), DataType.STRING)
        self.assertEqual(infer_data_type([]), DataType.STRING)

    def test_numeric_range(self):
        ints = infer_column("n", ["5", "-2", "10"])
        self.assertEqual((ints.min_value, ints.max_value), (-2, 10))

        floats = infer_column("f", ["1.5", "-0.25", "3"])
        self.assertEqual(floats.inferred_type, DataType.FLOAT)
        self.assertEqual((floats.min_value, floats.max_value), (-0.25, 3.0))

        text = infer_column("t", ["a", "b"])
        self.assertIsNone(text.min_value)
        self.assertIsNone(text.max_value)

    def test_distinct_count_and_bounded_samples(self):
        values = ["a", "b", "a", "c", "d", "e", "f", "g", "", None]
        column = infer_column("letters", values)

        self.assertEqual(column.distinct_count, 7)
        self.assertEqual(column.sample_values, ("a", "b", "c", "d", "e"))
        self.assertEqual(len(column.sample_values), SAMPLE_LIMIT)
        self.assertTrue(column.is_nullable)

    def test_short_rows_make_trailing_columns_nullable(self):
        table = Table.from_lists(["a", "b"], [["1"], ["2", "x"]])
        schema = infer_schema(table)

        self.assertFalse(schema[0].is_nullable)
        self.assertTrue(schema[1].is_nullable)

    def test_empty_column_is_nullable_string(self):
        column = infer_column("blank", ["", "  ", None])
        self.assertEqual(column.inferred_type, DataType.STRING)
        self.assertTrue(column.is_nullable)
        self.assertEqual(column.distinct_count, 0)

    def test_empty_input_yields_empty_schema(self):
        schema = infer_schema(parse_text("  \n"))
        self.assertEqual(len(schema), 0)

    def test_inference_does_not_mutate_table(self):
        table = Table.from_lists(["a"], [[" 1 "], [""]])
        infer_schema(table)
        self.assertEqual(table.rows[0].cells, [" 1 "])
        self.assertEqual(table.rows[1].cells, [""])

    def test_refresh_statistics_keeps_declared_types(self):
        table = Table.from_lists(["Score"], [["1"], ["2"]])
        schema = infer_schema(table)
        table.rows[1].cells[0] = "9"

        refreshed = refresh_statistics(table, schema)

        self.assertEqual(refreshed[0].inferred_type, DataType.INT)
        self.assertEqual(refreshed[0].max_value, 9)
        self.assertEqual(refreshed[0].sample_values, ("1", "9"))


class RecordInferenceTests(unittest.TestCase):
    def test_types_and_nullability_from_decoded_records(self):
        records = [
            {"Name": "Alice", "Age": 30, "Score": 1.5, "Active": True, "Joined": "2023-01-05"},
            {"Name": "Bob", "Age": None, "Score": 2, "Active": False, "Joined": "2023-02-10", "Extra": "x"},
        ]

        schema = infer_schema_from_records(records)

        self.assertEqual(schema.names(), ["Name", "Age", "Score", "Active", "Joined", "Extra"])
        self.assertEqual(schema.get("Name").inferred_type, DataType.STRING)
        self.assertEqual(schema.get("Age").inferred_type, DataType.INT)
        self.assertTrue(schema.get("Age").is_nullable)
        self.assertEqual(schema.get("Score").inferred_type, DataType.FLOAT)
        self.assertEqual((schema.get("Score").min_value, schema.get("Score").max_value), (1.5, 2))
        self.assertEqual(schema.get("Active").inferred_type, DataType.BOOL)
        self.assertEqual(schema.get("Joined").inferred_type, DataType.DATE)
        self.assertTrue(schema.get("Extra").is_nullable)
        self.assertFalse(schema.get("Name").is_nullable)


if __name__ == "__main__":
    unittest.main()
