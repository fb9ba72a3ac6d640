from __future__ import annotations

import unittest
from datetime import date

from quote_draft import QuoteDraft
from quote_pdf import QuoteRequestPdfArtifact, build_request_artifact, make_quote_request_pdf_bytes


def _draft(notes: str = "Vier ramen vervangen aan de voorgevel, HR++ glas.") -> QuoteDraft:
    draft = QuoteDraft(project_types={"ramen"})
    draft.set_value("name", "Jan Jansen")
    draft.set_value("email", "jan@example.com")
    draft.set_value("phone", "+31612345678")
    draft.set_value("material", "kunststof")
    draft.set_value("notes", notes)
    draft.set_value("preferred", "flexibel")
    return draft


class TestQuotePdf(unittest.TestCase):
    def _count_pdf_pages(self, pdf: bytes) -> int:
        """
        Page objects carry "/Type /Page"; the page tree carries "/Type /Pages".
        """
        page = pdf.count(b"/Type /Page")
        pages_tree = pdf.count(b"/Type /Pages")
        return max(0, page - pages_tree)

    def test_artifact_from_draft(self) -> None:
        artifact = build_request_artifact(_draft(), request_id="Q-7", request_date=date(2026, 10, 18))
        self.assertEqual(artifact.request_id, "Q-7")
        self.assertEqual(artifact.customer_name, "Jan Jansen")
        self.assertEqual(artifact.customer_address, "")
        labels = [label for label, _ in artifact.summary_rows]
        self.assertIn("Project type(s)", labels)
        self.assertNotIn("Project beschrijving", labels)
        self.assertTrue(artifact.description.startswith("Vier ramen"))

    def test_artifact_carries_estimate(self) -> None:
        artifact = build_request_artifact(_draft(), request_id="Q-7", request_date=date(2026, 10, 18))
        assert artifact.estimate is not None
        self.assertEqual(artifact.estimate.total_cents, 261360)
        self.assertEqual(artifact.estimate.valid_until, date(2026, 11, 17))

    def test_estimate_section_in_pdf(self) -> None:
        pdf = make_quote_request_pdf_bytes(
            build_request_artifact(_draft(), request_id="Q-7", request_date=date(2026, 10, 18))
        )
        self.assertIn(b"INDICATIEVE PRIJS", pdf)
        self.assertIn(b"2.613,60", pdf)
        self.assertIn(b"Geldig tot: 2026-11-17", pdf)

    def test_unpriced_request_has_no_estimate_section(self) -> None:
        draft = _draft()
        draft.project_types = {"renovatie"}
        artifact = build_request_artifact(draft, request_id="Q-7", request_date=date(2026, 10, 18))
        self.assertIsNone(artifact.estimate)
        self.assertNotIn(b"INDICATIEVE PRIJS", make_quote_request_pdf_bytes(artifact))

    def test_missing_request_id_is_dashed(self) -> None:
        artifact = build_request_artifact(_draft(), request_id=None, request_date=date(2026, 10, 18))
        self.assertEqual(artifact.request_id, "-")

    def test_make_pdf_bytes(self) -> None:
        artifact = build_request_artifact(_draft(), request_id="Q-7", request_date=date(2026, 10, 18))
        pdf = make_quote_request_pdf_bytes(artifact)
        self.assertTrue(pdf.startswith(b"%PDF"))
        self.assertGreater(len(pdf), 1000)
        self.assertIn(b"Offerteaanvraag", pdf)
        self.assertIn(b"KLANTGEGEVENS", pdf)
        self.assertIn(b"GEGEVENS AANVRAAG", pdf)
        self.assertIn(b"PROJECTBESCHRIJVING", pdf)
        self.assertIn(b"Jan Jansen", pdf)
        self.assertEqual(self._count_pdf_pages(pdf), 1)

    def test_long_tables_continue_on_next_page(self) -> None:
        rows = tuple((f"Regel {i}", f"Waarde {i}") for i in range(60))
        artifact = QuoteRequestPdfArtifact(
            request_id="Q-8",
            request_date=date(2026, 10, 18),
            customer_name="Jan Jansen",
            customer_email="jan@example.com",
            customer_phone="+31612345678",
            customer_address="",
            summary_rows=rows,
        )
        pdf = make_quote_request_pdf_bytes(artifact)
        self.assertIn(b"GEGEVENS AANVRAAG \\(VERVOLG\\)", pdf)
        self.assertGreaterEqual(self._count_pdf_pages(pdf), 2)

    def test_long_description_wraps_across_pages(self) -> None:
        notes = " ".join(["Alle ramen aan de achtergevel vervangen door kunststof kozijnen."] * 120)
        pdf = make_quote_request_pdf_bytes(
            build_request_artifact(_draft(notes), request_id="Q-9", request_date=date(2026, 10, 18))
        )
        self.assertGreaterEqual(self._count_pdf_pages(pdf), 2)

    def test_broken_logo_is_skipped(self) -> None:
        artifact = build_request_artifact(
            _draft(), request_id="Q-10", request_date=date(2026, 10, 18), logo_png_bytes=b"not a png"
        )
        pdf = make_quote_request_pdf_bytes(artifact)
        self.assertTrue(pdf.startswith(b"%PDF"))


if __name__ == "__main__":
    unittest.main()
