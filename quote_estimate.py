from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from quote_draft import MATERIALS, PROJECT_TYPES, QuoteDraft


class EstimateError(ValueError):
    pass


@dataclass(frozen=True)
class UnitPrice:
    basis_eur: int
    # per m² for windows, per piece for doors
    per_unit_eur: int


@dataclass(frozen=True)
class ProductRule:
    """
    How one wizard project type is priced.
    """
    label: str
    kind: str  # "raam" | "deur"
    complexity_factor: float = 1.0
    mount_hours: float = 2.0


@dataclass(frozen=True)
class PriceTable:
    revision: str
    # key: (kind, material) -> unit price
    unit_prices_eur: Mapping[Tuple[str, str], UnitPrice]
    glass_per_m2_eur: Mapping[str, int]
    mount_hour_eur: int
    # fixed labour lines, in order: (code, description, amount)
    fixed_labour_eur: Tuple[Tuple[str, str, int], ...]
    call_out_eur: int
    # (minimum subtotal in euro, rate), ascending
    volume_discounts: Tuple[Tuple[int, float], ...]
    # month -> rate
    season_discounts: Mapping[int, float] = field(default_factory=dict)
    vat_rate: float = 0.21
    validity_days: int = 30
    reference_window_m2: float = 1.5
    default_glass: str = "hr++"


@dataclass(frozen=True)
class EstimateInput:
    project_types: Tuple[str, ...]
    material: str
    estimate_date: date
    glass: Optional[str] = None
    quantity_per_type: int = 1


@dataclass(frozen=True)
class LineItem:
    code: str
    description: str
    amount_cents: int


@dataclass(frozen=True)
class QuoteEstimate:
    revision: str
    line_items: Tuple[LineItem, ...]
    subtotal_cents: int
    discounts: Tuple[LineItem, ...]
    net_cents: int
    vat_cents: int
    total_cents: int
    valid_until: date
    notes: Tuple[str, ...]
    vat_rate: float = 0.21

    @property
    def discount_cents(self) -> int:
        return sum(d.amount_cents for d in self.discounts)


PRODUCT_RULES: Dict[str, ProductRule] = {
    "ramen": ProductRule(label="Ramen", kind="raam", mount_hours=2.0),
    "deuren": ProductRule(label="Deuren", kind="deur", mount_hours=3.0),
    # Non-standard sizes: priced as doors with the special-dimensions factor.
    "schuifdeuren": ProductRule(label="Schuifdeuren", kind="deur", complexity_factor=1.20, mount_hours=3.0),
    "garagedeuren": ProductRule(label="Garagedeuren", kind="deur", complexity_factor=1.20, mount_hours=3.0),
}

DEFAULT_PRICE_TABLE = PriceTable(
    revision="2024 richtprijzen",
    unit_prices_eur={
        ("raam", "kunststof"): UnitPrice(basis_eur=350, per_unit_eur=450),
        ("raam", "aluminium"): UnitPrice(basis_eur=500, per_unit_eur=750),
        ("raam", "hout"): UnitPrice(basis_eur=400, per_unit_eur=600),
        ("deur", "kunststof"): UnitPrice(basis_eur=300, per_unit_eur=450),
        ("deur", "aluminium"): UnitPrice(basis_eur=500, per_unit_eur=800),
        ("deur", "hout"): UnitPrice(basis_eur=350, per_unit_eur=550),
    },
    glass_per_m2_eur={
        "enkel": 80,
        "dubbel": 120,
        "hr": 180,
        "hr++": 220,
        "triple": 320,
        "zonwerend": 280,
        "gelaagd": 200,
    },
    mount_hour_eur=65,
    fixed_labour_eur=(
        ("voorbereiding", "Voorbereiding en afplakken", 250),
        ("afwerking", "Afwerken kozijnen en kitten", 200),
        ("afvoer", "Afvoer oude materialen", 150),
    ),
    call_out_eur=75,
    volume_discounts=((5000, 0.02), (10000, 0.05), (15000, 0.08), (25000, 0.12)),
    season_discounts={1: 0.05, 2: 0.05, 11: 0.05, 12: 0.05, 6: 0.03, 7: 0.03, 8: 0.03},
)

ESTIMATE_DISCLAIMER = (
    "Indicatieve prijs op basis van standaardafmetingen; de definitieve offerte volgt na inmeten."
)


def _cents(euros: float) -> int:
    return int(round(euros * 100))


def format_eur(cents: int) -> str:
    """
    Dutch notation: "€ 1.234,56".
    """
    sign = "-" if cents < 0 else ""
    whole, rest = divmod(abs(int(cents)), 100)
    return f"{sign}€ {whole:,}".replace(",", ".") + f",{rest:02d}"


def volume_discount_rate(subtotal_cents: int, table: PriceTable) -> float:
    rate = 0.0
    for minimum_eur, r in table.volume_discounts:
        if subtotal_cents >= minimum_eur * 100:
            rate = r
    return rate


def generate_estimate(inp: EstimateInput, table: PriceTable = DEFAULT_PRICE_TABLE) -> QuoteEstimate:
    """
    Itemized indicative price for the selected products.

    Materials and glass are priced per reference unit (one window of `reference_window_m2`,
    one door), labour per mounting hour plus fixed lines, then volume and season discounts
    on the subtotal and VAT on the discounted amount.
    """
    if inp.material not in MATERIALS:
        raise EstimateError(f"Unknown material {inp.material!r}.")
    if inp.quantity_per_type < 1:
        raise EstimateError("Quantity must be at least 1.")
    glass = inp.glass or table.default_glass
    if glass not in table.glass_per_m2_eur:
        raise EstimateError(f"Unknown glass type {glass!r}.")

    priced = [t for t in inp.project_types if t in PRODUCT_RULES]
    if not priced:
        raise EstimateError("No priceable project type selected.")

    qty = inp.quantity_per_type
    material_label = MATERIALS[inp.material]
    area = table.reference_window_m2
    line_items: List[LineItem] = []
    mount_hours = 0.0

    for tag in sorted(set(priced), key=list(PRODUCT_RULES).index):
        rule = PRODUCT_RULES[tag]
        unit = table.unit_prices_eur.get((rule.kind, inp.material))
        if unit is None:
            raise EstimateError(f"No price for {rule.kind} in {inp.material!r}.")
        if rule.kind == "raam":
            each = (unit.basis_eur + unit.per_unit_eur * area + table.glass_per_m2_eur[glass] * area) * rule.complexity_factor
            area_label = f"{area:.1f}".replace(".", ",")
            description = f"{rule.label} - {material_label}, {glass.upper()} glas (ca. {area_label} m²)"
        else:
            each = (unit.basis_eur + unit.per_unit_eur) * rule.complexity_factor
            description = f"{rule.label} - {material_label}"
        if qty > 1:
            description = f"{description} x{qty}"
        line_items.append(LineItem(code=tag, description=description, amount_cents=_cents(each * qty)))
        mount_hours += rule.mount_hours * rule.complexity_factor * qty

    mount_hours = round(mount_hours, 2)
    line_items.append(
        LineItem(
            code="montage",
            description=f"Montage ({mount_hours:g} uur)".replace(".", ","),
            amount_cents=_cents(mount_hours * table.mount_hour_eur),
        )
    )
    for code, description, amount in table.fixed_labour_eur:
        line_items.append(LineItem(code=code, description=description, amount_cents=amount * 100))
    line_items.append(LineItem(code="voorrijkosten", description="Voorrijkosten", amount_cents=table.call_out_eur * 100))

    subtotal = sum(li.amount_cents for li in line_items)

    discounts: List[LineItem] = []
    volume_rate = volume_discount_rate(subtotal, table)
    if volume_rate > 0:
        discounts.append(
            LineItem(code="volume", description=f"Volumekorting {volume_rate:.0%}", amount_cents=int(round(subtotal * volume_rate)))
        )
    season_rate = table.season_discounts.get(inp.estimate_date.month, 0.0)
    if season_rate > 0:
        discounts.append(
            LineItem(code="seizoen", description=f"Seizoenskorting {season_rate:.0%}", amount_cents=int(round(subtotal * season_rate)))
        )

    net = subtotal - sum(d.amount_cents for d in discounts)
    vat = int(round(net * table.vat_rate))

    notes = [ESTIMATE_DISCLAIMER]
    skipped = sorted(set(inp.project_types) - set(priced))
    if skipped:
        labels = ", ".join(PROJECT_TYPES.get(t, t) for t in skipped)
        notes.append(f"Niet in de richtprijs opgenomen: {labels}.")

    return QuoteEstimate(
        revision=table.revision,
        line_items=tuple(line_items),
        subtotal_cents=subtotal,
        discounts=tuple(discounts),
        net_cents=net,
        vat_cents=vat,
        total_cents=net + vat,
        valid_until=inp.estimate_date + timedelta(days=table.validity_days),
        notes=tuple(notes),
        vat_rate=table.vat_rate,
    )


def estimate_from_draft(
    draft: QuoteDraft,
    *,
    on: Optional[date] = None,
    table: PriceTable = DEFAULT_PRICE_TABLE,
) -> Optional[QuoteEstimate]:
    """
    Estimate for the wizard's current draft, or None while it cannot be priced yet
    (no material chosen, or only project types without a price rule).
    """
    types: Sequence[str] = tuple(sorted(draft.project_types))
    if draft.preferences.material not in MATERIALS or not any(t in PRODUCT_RULES for t in types):
        return None
    return generate_estimate(
        EstimateInput(
            project_types=tuple(types),
            material=draft.preferences.material,
            estimate_date=on or date.today(),
        ),
        table,
    )


def estimate_rows(estimate: QuoteEstimate) -> List[Tuple[str, str]]:
    """
    (label, amount) rows shared by the summary step and the PDF: line items, subtotal,
    discounts, then the VAT breakdown.
    """
    rows = [(li.description, format_eur(li.amount_cents)) for li in estimate.line_items]
    rows.append(("Subtotaal", format_eur(estimate.subtotal_cents)))
    rows.extend((d.description, format_eur(-d.amount_cents)) for d in estimate.discounts)
    rows.append(("Totaal excl. btw", format_eur(estimate.net_cents)))
    rows.append((f"Btw {estimate.vat_rate:.0%}", format_eur(estimate.vat_cents)))
    rows.append(("Totaal incl. btw", format_eur(estimate.total_cents)))
    return rows
