from __future__ import annotations

import unittest

import pytest

from form import Draft, validate_draft


def _valid_draft(**overrides: str) -> Draft:
    values = {"title": "Dune", "author": "Herbert", "email": "a@b.com", "age": "12"}
    values.update(overrides)
    return Draft(**values)


@pytest.mark.parametrize("field", ["title", "author"])
@pytest.mark.parametrize("value", ["", "   "])
def test_blank_required_fields_are_rejected(field: str, value: str) -> None:
    errors = validate_draft(_valid_draft(**{field: value}))
    assert errors[field] == f"{field.capitalize()} is required"


@pytest.mark.parametrize(
    "email",
    ["", "plain", "a@b", "a b@c.com", "a@b c.com", "@b.com", "a@.com", "a@@b.com", "a@b.", "a@b.com x", " a@b.com", "a@b.com "],
)
def test_malformed_emails_are_rejected(email: str) -> None:
    errors = validate_draft(_valid_draft(email=email))
    assert errors["email"] == "Invalid email format"


@pytest.mark.parametrize("email", ["a@b.com", "first.last@example.co.uk", "x+tag@sub.domain.org"])
def test_well_formed_emails_pass(email: str) -> None:
    assert "email" not in validate_draft(_valid_draft(email=email))


@pytest.mark.parametrize("age", ["", "abc", "0", "-3", "0.0", "nan", "inf"])
def test_non_positive_or_non_numeric_age_is_rejected(age: str) -> None:
    errors = validate_draft(_valid_draft(age=age))
    assert errors["age"] == "Age must be a positive number"


@pytest.mark.parametrize("age", ["1", "12", "0.5", " 7 "])
def test_positive_ages_pass(age: str) -> None:
    assert "age" not in validate_draft(_valid_draft(age=age))


class ValidateDraftTests(unittest.TestCase):
    def test_valid_draft_has_no_errors(self) -> None:
        self.assertEqual(validate_draft(_valid_draft()), {})

    def test_all_rules_are_reported_together(self) -> None:
        errors = validate_draft(Draft())
        self.assertEqual(set(errors), {"title", "author", "email", "age"})

    def test_optional_fields_are_not_validated(self) -> None:
        errors = validate_draft(_valid_draft(published_date="", publisher=""))
        self.assertEqual(errors, {})

    def test_to_fields_converts_age_to_number(self) -> None:
        fields = _valid_draft(age="12", title="  Dune ").to_fields()
        self.assertEqual(fields.age, 12)
        self.assertIsInstance(fields.age, int)
        self.assertEqual(fields.title, "Dune")
        self.assertEqual(_valid_draft(age="2.5").to_fields().age, 2.5)


if __name__ == "__main__":
    unittest.main()
