import unittest

from tessera.models import ColumnSchema, DataType, Schema, Table, ValidationErrorType, ValidationResult
from tessera.validation import validate_cell, validate_column, validate_json_text, validate_records


def schema_of(*columns):
    return Schema(tuple(ColumnSchema(name, data_type, nullable) for name, data_type, nullable in columns))


class JsonValidationTests(unittest.TestCase):
    def test_accepts_valid_json_against_schema(self):
        schema = schema_of(("Name", DataType.STRING, False), ("Active", DataType.BOOL, False), ("Score", DataType.INT, False))

        result = validate_json_text('[{"Name":"Alice","Active":true,"Score":10}]', schema)

        self.assertTrue(result.is_valid)
        self.assertEqual(result.errors, ())
        self.assertEqual(result.model, [{"Name": "Alice", "Active": True, "Score": 10}])

    def test_detects_type_mismatch(self):
        schema = schema_of(("Score", DataType.INT, False))

        result = validate_json_text('[{"Score":1.5}]', schema)

        self.assertFalse(result.is_valid)
        self.assertIsNone(result.model)
        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].type, ValidationErrorType.TYPE_MISMATCH)
        self.assertEqual(result.errors[0].key, "Score")

    def test_detects_missing_and_extra_keys(self):
        schema = schema_of(("Name", DataType.STRING, False), ("Age", DataType.INT, False))

        result = validate_json_text('[{"Name":"Bob","Nickname":"B"}]', schema)

        self.assertFalse(result.is_valid)
        missing = result.errors_of(ValidationErrorType.MISSING_KEY)
        unknown = result.errors_of(ValidationErrorType.UNKNOWN_KEY)
        self.assertEqual(len(missing), 1)
        self.assertEqual(missing[0].key, "Age")
        self.assertEqual(missing[0].row_index, 0)
        self.assertEqual(len(unknown), 1)
        self.assertEqual(unknown[0].key, "Nickname")
        self.assertEqual(len(result.errors), 2)

    def test_errors_are_aggregated_across_rows(self):
        schema = schema_of(("Name", DataType.STRING, False), ("Age", DataType.INT, False))

        result = validate_json_text('[{"Name":"A"},{"Name":"B","Age":"x"},{"Name":null,"Age":3}]', schema)

        self.assertEqual(
            [(error.type, error.row_index, error.key) for error in result.errors],
            [
                (ValidationErrorType.MISSING_KEY, 0, "Age"),
                (ValidationErrorType.TYPE_MISMATCH, 1, "Age"),
                (ValidationErrorType.NULL_NOT_ALLOWED, 2, "Name"),
            ],
        )

    def test_null_allowed_on_nullable_column(self):
        schema = schema_of(("Name", DataType.STRING, True))
        self.assertTrue(validate_json_text('[{"Name":null}]', schema).is_valid)

    def test_key_matching_is_case_sensitive(self):
        schema = schema_of(("Name", DataType.STRING, False))
        result = validate_json_text('[{"name":"A"}]', schema)
        self.assertEqual(
            sorted(error.type.value for error in result.errors),
            ["MissingKey", "UnknownKey"],
        )

    def test_type_compatibility_rules(self):
        schema = schema_of(
            ("F", DataType.FLOAT, False),
            ("B", DataType.BOOL, False),
            ("D", DataType.DATE, False),
            ("S", DataType.STRING, False),
        )
        ok = validate_json_text('[{"F":3,"B":false,"D":"2023-01-05","S":{"nested":[1]}}]', schema)
        self.assertTrue(ok.is_valid)

        bad = validate_json_text('[{"F":"3","B":"true","D":5,"S":1}]', schema)
        self.assertEqual(len(bad.errors_of(ValidationErrorType.TYPE_MISMATCH)), 4)

    def test_int_column_rejects_bool(self):
        schema = schema_of(("Score", DataType.INT, False))
        result = validate_json_text('[{"Score":true}]', schema)
        self.assertEqual(result.errors[0].type, ValidationErrorType.TYPE_MISMATCH)

    def test_syntax_error_carries_line_number(self):
        schema = schema_of(("Name", DataType.STRING, False))

        result = validate_json_text('[\n{"Name": "A"},\n{"Name": }\n]', schema)

        self.assertEqual(len(result.errors), 1)
        self.assertEqual(result.errors[0].type, ValidationErrorType.SYNTAX)
        self.assertEqual(result.errors[0].line_number, 3)
        self.assertIsNone(result.model)

    def test_empty_text_and_nan_literals_are_syntax_errors(self):
        schema = schema_of(("Score", DataType.FLOAT, True))
        for text in ("", "   ", '[{"Score": NaN}]'):
            result = validate_json_text(text, schema)
            self.assertEqual([error.type for error in result.errors], [ValidationErrorType.SYNTAX])

    def test_too_deeply_nested_document_is_a_syntax_error(self):
        text = "[" * 100000 + "]" * 100000

        result = validate_json_text(text, Schema(()))

        self.assertFalse(result.is_valid)
        self.assertIsNone(result.model)
        self.assertEqual([error.type for error in result.errors], [ValidationErrorType.SYNTAX])

    def test_wrong_shape_is_a_structure_error(self):
        schema = schema_of(("Name", DataType.STRING, False))
        for text in ('{"Name":"A"}', "[1, 2]", '"text"', '[{"Name":"A"}, []]'):
            result = validate_json_text(text, schema)
            self.assertEqual([error.type for error in result.errors], [ValidationErrorType.STRUCTURE], text)

    def test_empty_array_is_valid(self):
        result = validate_json_text("[]", schema_of(("Name", DataType.STRING, False)))
        self.assertTrue(result.is_valid)
        self.assertEqual(result.model, [])

    def test_validate_records_uses_the_same_checks(self):
        schema = schema_of(("Name", DataType.STRING, False))
        result = validate_records([{"Name": "A"}, {"Other": 1}], schema)
        self.assertEqual(len(result.errors), 2)

    def test_result_model_invariant(self):
        with self.assertRaises(ValueError):
            ValidationResult((), None)
        failure = ValidationResult.failure("bad")
        with self.assertRaises(ValueError):
            ValidationResult(failure.errors, [])


class CellValidationTests(unittest.TestCase):
    def setUp(self):
        self.schema = schema_of(
            ("Age", DataType.INT, False),
            ("Score", DataType.FLOAT, True),
            ("Active", DataType.BOOL, True),
            ("Joined", DataType.DATE, True),
            ("Name", DataType.STRING, True),
        )

    def test_values_are_normalized(self):
        self.assertEqual(validate_cell(self.schema, 0, " 42 ").normalized_value, "42")
        self.assertEqual(validate_cell(self.schema, 1, "10").normalized_value, "10")
        self.assertEqual(validate_cell(self.schema, 1, "20.5").normalized_value, "20.5")
        self.assertEqual(validate_cell(self.schema, 2, "TRUE").normalized_value, "true")
        self.assertEqual(validate_cell(self.schema, 3, "01/05/2023").normalized_value, "2023-01-05")
        self.assertEqual(validate_cell(self.schema, 4, " as is ").normalized_value, " as is ")

    def test_rejections(self):
        result = validate_cell(self.schema, 0, "abc")
        self.assertFalse(result.is_valid)
        self.assertEqual(result.message, "Age expects an integer.")

        self.assertEqual(validate_cell(self.schema, 0, "").message, "Age cannot be empty.")
        self.assertTrue(validate_cell(self.schema, 1, "").is_valid)
        self.assertEqual(validate_cell(self.schema, 9, "1").message, "Column index is out of range.")


class ColumnValidationTests(unittest.TestCase):
    def test_validates_column_range_and_normalization(self):
        table = Table.from_lists(["Score"], [["10"], ["20.5"]])
        column = ColumnSchema("Score", DataType.FLOAT, False, 0, 100)

        report = validate_column(table, 0, column)

        self.assertTrue(report.is_valid)
        self.assertEqual(report.normalized_values, ["10", "20.5"])

    def test_out_of_range_and_unparsable_values_are_reported(self):
        table = Table.from_lists(["Score"], [["150"], ["abc"], ["50"]])
        column = ColumnSchema("Score", DataType.FLOAT, False, 0, 100)

        report = validate_column(table, 0, column)

        self.assertFalse(report.is_valid)
        self.assertEqual(len(report.errors), 2)
        self.assertTrue(report.errors[0].startswith("Row 0:"))
        self.assertTrue(report.errors[1].startswith("Row 1:"))


if __name__ == "__main__":
    unittest.main()
