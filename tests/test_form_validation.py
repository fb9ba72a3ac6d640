from __future__ import annotations

import unittest

from form_validation import FieldKind, FieldRule, is_valid_email, is_valid_phone, validate_field
from quote_draft import FIELD_RULES


class TestEmailAndPhone(unittest.TestCase):
    def test_email_patterns(self) -> None:
        self.assertTrue(is_valid_email("jan@example.com"))
        self.assertTrue(is_valid_email("  jan.jansen@mail.example.be "))
        self.assertFalse(is_valid_email("jan@"))
        self.assertFalse(is_valid_email("jan example@x.nl"))
        self.assertFalse(is_valid_email("jan@example"))
        self.assertFalse(is_valid_email(""))

    def test_shortest_addresses(self) -> None:
        self.assertTrue(is_valid_email("a@b.co"))
        self.assertFalse(is_valid_email("a@b"))
        self.assertFalse(is_valid_email("a.com"))
        self.assertTrue(validate_field(FIELD_RULES["email"], "a@b.co").valid)
        self.assertEqual(validate_field(FIELD_RULES["email"], "a@b").message, "Voer een geldig e-mailadres in")

    def test_phone_needs_ten_characters_of_digits_and_separators(self) -> None:
        self.assertTrue(is_valid_phone("+31 6 12345678"))
        self.assertTrue(is_valid_phone("0477-28 10 28"))
        self.assertTrue(is_valid_phone("(010) 1234567"))
        self.assertFalse(is_valid_phone("12345"))
        self.assertFalse(is_valid_phone("06-1234abcd"))
        self.assertFalse(is_valid_phone("++31612345678"))


class TestValidateField(unittest.TestCase):
    def test_required_empty_uses_label(self) -> None:
        result = validate_field(FIELD_RULES["email"], "")
        self.assertFalse(result.valid)
        self.assertEqual(result.message, "Email is verplicht")

        result = validate_field(FIELD_RULES["name"], "   ")
        self.assertEqual(result.message, "Naam is verplicht")

    def test_optional_empty_is_valid(self) -> None:
        self.assertTrue(validate_field(FIELD_RULES["address"], "").valid)
        self.assertTrue(validate_field(FIELD_RULES["date"], None).valid)

    def test_format_messages(self) -> None:
        self.assertEqual(validate_field(FIELD_RULES["email"], "nope").message, "Voer een geldig e-mailadres in")
        self.assertEqual(validate_field(FIELD_RULES["phone"], "123").message, "Voer een geldig telefoonnummer in")
        self.assertFalse(validate_field(FIELD_RULES["date"], "01-12-2026").valid)
        self.assertTrue(validate_field(FIELD_RULES["date"], "2026-12-01").valid)

    def test_length_bounds(self) -> None:
        notes = FIELD_RULES["notes"]
        self.assertEqual(
            validate_field(notes, "te kort").message,
            "Projectbeschrijving moet minimaal 10 tekens bevatten",
        )
        self.assertTrue(validate_field(notes, "x" * 10).valid)
        self.assertTrue(validate_field(notes, "x" * 1000).valid)
        self.assertEqual(
            validate_field(notes, "x" * 1001).message,
            "Projectbeschrijving mag maximaal 1000 tekens bevatten",
        )
        self.assertFalse(validate_field(FIELD_RULES["name"], "J").valid)

    def test_choice_must_be_listed(self) -> None:
        self.assertTrue(validate_field(FIELD_RULES["material"], "hout").valid)
        self.assertEqual(
            validate_field(FIELD_RULES["material"], "staal").message,
            "Kies een geldige optie voor Materiaal",
        )

    def test_checkbox_requires_true(self) -> None:
        rule = FieldRule("ok", "Akkoord", FieldKind.CHECKBOX, required=True)
        self.assertFalse(validate_field(rule, False).valid)
        self.assertFalse(validate_field(rule, "true").valid)
        self.assertTrue(validate_field(rule, True).valid)
        self.assertTrue(validate_field(FieldRule("ok", "Akkoord", FieldKind.CHECKBOX), False).valid)


if __name__ == "__main__":
    unittest.main()
