from __future__ import annotations

import unittest
from datetime import date

from quote_draft import QuoteDraft
from quote_estimate import (
    DEFAULT_PRICE_TABLE,
    ESTIMATE_DISCLAIMER,
    EstimateError,
    EstimateInput,
    estimate_from_draft,
    estimate_rows,
    format_eur,
    generate_estimate,
    volume_discount_rate,
)


class TestEstimate(unittest.TestCase):
    def test_single_window_in_october(self) -> None:
        est = generate_estimate(
            EstimateInput(project_types=("ramen",), material="kunststof", estimate_date=date(2026, 10, 18))
        )
        codes = [li.code for li in est.line_items]
        self.assertEqual(codes, ["ramen", "montage", "voorbereiding", "afwerking", "afvoer", "voorrijkosten"])
        self.assertEqual(est.line_items[0].amount_cents, 135500)
        self.assertEqual(est.line_items[0].description, "Ramen - Kunststof, HR++ glas (ca. 1,5 m²)")
        self.assertEqual(est.subtotal_cents, 216000)
        self.assertEqual(est.discounts, ())
        self.assertEqual(est.vat_cents, 45360)
        self.assertEqual(est.total_cents, 261360)
        self.assertEqual(format_eur(est.total_cents), "€ 2.613,60")
        self.assertEqual(est.valid_until, date(2026, 11, 17))
        self.assertEqual(est.notes, (ESTIMATE_DISCLAIMER,))

    def test_doors_with_complexity_and_winter_discount(self) -> None:
        est = generate_estimate(
            EstimateInput(
                project_types=("schuifdeuren", "deuren"),
                material="aluminium",
                estimate_date=date(2026, 1, 12),
            )
        )
        by_code = {li.code: li for li in est.line_items}
        self.assertEqual(by_code["deuren"].amount_cents, 130000)
        self.assertEqual(by_code["schuifdeuren"].amount_cents, 156000)
        self.assertEqual(by_code["montage"].amount_cents, 42900)
        self.assertEqual(by_code["montage"].description, "Montage (6,6 uur)")
        self.assertEqual([li.code for li in est.line_items][:2], ["deuren", "schuifdeuren"])
        self.assertEqual(est.subtotal_cents, 396400)
        self.assertEqual([d.code for d in est.discounts], ["seizoen"])
        self.assertEqual(est.discount_cents, 19820)
        self.assertEqual(est.net_cents, 376580)
        self.assertEqual(est.vat_cents, 79082)
        self.assertEqual(est.total_cents, 455662)

    def test_unpriced_project_type_is_noted(self) -> None:
        est = generate_estimate(
            EstimateInput(project_types=("ramen", "renovatie"), material="hout", estimate_date=date(2026, 10, 18))
        )
        self.assertNotIn("renovatie", [li.code for li in est.line_items])
        self.assertIn("Niet in de richtprijs opgenomen: Renovatie.", est.notes)

    def test_quantity_multiplies_products_and_mounting(self) -> None:
        est = generate_estimate(
            EstimateInput(
                project_types=("ramen",),
                material="kunststof",
                estimate_date=date(2026, 10, 18),
                quantity_per_type=4,
            )
        )
        by_code = {li.code: li for li in est.line_items}
        self.assertEqual(by_code["ramen"].amount_cents, 4 * 135500)
        self.assertTrue(by_code["ramen"].description.endswith("x4"))
        self.assertEqual(by_code["montage"].amount_cents, 8 * 6500)
        # 5420 + 520 + 675 euro crosses the first volume threshold.
        self.assertEqual([d.code for d in est.discounts], ["volume"])
        self.assertEqual(est.discounts[0].description, "Volumekorting 2%")

    def test_invalid_input_raises(self) -> None:
        today = date(2026, 10, 18)
        with self.assertRaises(EstimateError):
            generate_estimate(EstimateInput(project_types=("ramen",), material="beton", estimate_date=today))
        with self.assertRaises(EstimateError):
            generate_estimate(EstimateInput(project_types=("renovatie",), material="hout", estimate_date=today))
        with self.assertRaises(EstimateError):
            generate_estimate(
                EstimateInput(project_types=("ramen",), material="hout", estimate_date=today, glass="glas-in-lood")
            )
        with self.assertRaises(EstimateError):
            generate_estimate(
                EstimateInput(project_types=("ramen",), material="hout", estimate_date=today, quantity_per_type=0)
            )
        self.assertTrue(issubclass(EstimateError, ValueError))


class TestHelpers(unittest.TestCase):
    def test_volume_discount_thresholds(self) -> None:
        self.assertEqual(volume_discount_rate(499999, DEFAULT_PRICE_TABLE), 0.0)
        self.assertEqual(volume_discount_rate(500000, DEFAULT_PRICE_TABLE), 0.02)
        self.assertEqual(volume_discount_rate(1000000, DEFAULT_PRICE_TABLE), 0.05)
        self.assertEqual(volume_discount_rate(2500000, DEFAULT_PRICE_TABLE), 0.12)

    def test_format_eur(self) -> None:
        self.assertEqual(format_eur(0), "€ 0,00")
        self.assertEqual(format_eur(7500), "€ 75,00")
        self.assertEqual(format_eur(123456789), "€ 1.234.567,89")
        self.assertEqual(format_eur(-19820), "-€ 198,20")

    def test_rows_end_with_vat_breakdown(self) -> None:
        est = generate_estimate(
            EstimateInput(project_types=("deuren",), material="hout", estimate_date=date(2026, 7, 1))
        )
        rows = estimate_rows(est)
        labels = [label for label, _ in rows]
        self.assertEqual(labels[-3:], ["Totaal excl. btw", "Btw 21%", "Totaal incl. btw"])
        self.assertIn("Seizoenskorting 3%", labels)
        self.assertEqual(rows[-1][1], format_eur(est.total_cents))


class TestEstimateFromDraft(unittest.TestCase):
    def test_needs_material_and_priceable_type(self) -> None:
        draft = QuoteDraft(project_types={"ramen"})
        self.assertIsNone(estimate_from_draft(draft, on=date(2026, 10, 18)))
        draft.set_value("material", "kunststof")
        draft.project_types = {"renovatie"}
        self.assertIsNone(estimate_from_draft(draft, on=date(2026, 10, 18)))

    def test_filled_draft(self) -> None:
        draft = QuoteDraft(project_types={"ramen"})
        draft.set_value("material", "kunststof")
        est = estimate_from_draft(draft, on=date(2026, 10, 18))
        assert est is not None
        self.assertEqual(est.total_cents, 261360)


if __name__ == "__main__":
    unittest.main()
