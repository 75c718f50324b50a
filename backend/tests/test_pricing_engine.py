"""
test_pricing_engine.py — Unit tests for item and quotation pricing.

Tests cover:
  - unit price = base price + sum of material uplifts
  - item totals scale unit price and CBM by quantity
  - quotation totals: subtotal, 5% VAT, grand total, total CBM
  - totals are recomputed from items, never read from stale fields
  - material specification text for the spreadsheet

All tests are pure unit tests; no database or external services required.
"""

import pytest

_VAT_RATE = 0.05


# ===========================================================================
# Class 1: Unit price
# ===========================================================================

class TestItemUnitPrice:

    def test_two_uplifts_added_to_base(self, sofa, velvet, oak, make_annotation):
        """
        base 1000 + uplift 50 + uplift 75 = 1125
        """
        from nammos.services.pricing_engine import item_unit_price
        annotations = [make_annotation(velvet, part_name="Seat"), make_annotation(oak, part_name="Legs")]
        assert item_unit_price(sofa, annotations) == 1125.0

    def test_no_annotations_is_exactly_base_price(self, sofa):
        from nammos.services.pricing_engine import item_unit_price
        assert item_unit_price(sofa, []) == sofa.base_price

    def test_zero_uplift_material_leaves_price_unchanged(self, sofa, brass, make_annotation):
        from nammos.services.pricing_engine import item_unit_price
        assert item_unit_price(sofa, [make_annotation(brass)]) == 1000.0

    def test_same_material_on_two_parts_counts_twice(self, sofa, velvet, make_annotation):
        """1000 + 50 (seat) + 50 (back) = 1100"""
        from nammos.services.pricing_engine import item_unit_price
        annotations = [make_annotation(velvet, part_name="Seat"), make_annotation(velvet, part_name="Back")]
        assert item_unit_price(sofa, annotations) == 1100.0


# ===========================================================================
# Class 2: Item totals
# ===========================================================================

class TestItemTotals:

    def test_quantity_three(self, velvet, oak, make_annotation, make_item):
        """
        unit 1125 x 3 = 3375; cbm 2.5 x 3 = 7.5
        """
        from nammos.services.pricing_engine import item_totals
        item = make_item([make_annotation(velvet), make_annotation(oak, part_name="Legs")], quantity=3)
        assert item.unit_price == 1125.0
        totals = item_totals(item)
        assert totals["total_price"] == 3375.0
        assert abs(totals["total_cbm"] - 7.5) < 1e-9

    def test_price_item_fills_derived_fields(self, make_item):
        item = make_item(quantity=2)
        assert item.unit_price == 1000.0
        assert item.cbm == 2.5
        assert item.total_cbm == 5.0
        assert item.total_price == 2000.0

    def test_no_intermediate_rounding(self, sofa, make_item):
        """base 0.1 x 3 keeps float precision (0.30000000000000004)."""
        product = sofa.model_copy(update={"base_price": 0.1, "cbm": 0.1})
        item = make_item(product=product, quantity=3)
        assert item.total_price == 0.1 * 3
        assert item.total_cbm == 0.1 * 3


# ===========================================================================
# Class 3: Quotation totals
# ===========================================================================

class TestQuotationTotals:

    def test_subtotal_ten_thousand(self, sofa, make_item):
        """
        subtotal 10000 -> vat 500, total 10500
        """
        from nammos.services.pricing_engine import quotation_totals
        product = sofa.model_copy(update={"base_price": 2500.0})
        items = [make_item(product=product, quantity=2, item_id="a"),
                 make_item(product=product, quantity=2, item_id="b")]
        totals = quotation_totals(items)
        assert totals["subtotal"] == 10000.0
        assert totals["vat_amount"] == 500.0
        assert totals["total_amount"] == 10500.0
        assert abs(totals["total_cbm"] - 10.0) < 1e-9

    def test_empty_items(self):
        from nammos.services.pricing_engine import quotation_totals
        assert quotation_totals([]) == {
            "subtotal": 0, "vat_amount": 0, "total_amount": 0, "total_cbm": 0,
        }

    def test_total_equals_subtotal_plus_vat(self, velvet, make_annotation, make_item):
        from nammos.services.pricing_engine import quotation_totals
        items = [make_item([make_annotation(velvet)], quantity=q, item_id=str(q)) for q in (1, 2, 7)]
        totals = quotation_totals(items)
        assert totals["subtotal"] == sum(i.total_price for i in items)
        assert totals["total_amount"] == totals["subtotal"] + totals["subtotal"] * _VAT_RATE

    def test_apply_totals_ignores_stale_fields(self, make_item):
        """Header and item totals sent by a client are recomputed."""
        from nammos.models.quotation_schema import Quotation
        from nammos.services.pricing_engine import apply_totals
        stale_item = make_item(quantity=2).model_copy(update={"unit_price": 1.0, "total_price": 2.0})
        quotation = Quotation(customer_name="Acme", items=[stale_item], subtotal=99.0, total_amount=1.0)
        priced = apply_totals(quotation)
        assert priced.items[0].unit_price == 1000.0
        assert priced.items[0].total_price == 2000.0
        assert priced.subtotal == 2000.0
        assert priced.vat_amount == 100.0
        assert priced.total_amount == 2100.0


# ===========================================================================
# Class 4: Material specification text
# ===========================================================================

class TestMaterialSpecification:

    def test_empty_is_standard(self):
        from nammos.services.pricing_engine import material_specification
        assert material_specification([]) == "Standard"

    def test_lines_in_annotation_order(self, velvet, oak, make_annotation):
        from nammos.services.pricing_engine import material_specification
        text = material_specification([
            make_annotation(velvet, part_name="Seat"),
            make_annotation(oak, part_name="Legs"),
        ])
        assert text == "Seat: Royal Velvet (FAB-101)\nLegs: Natural Oak (WD-7)"
