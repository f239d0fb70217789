"""
Unit tests for prompt rendering.

WHAT: Test session instructions and the per-turn leverage note
WHY: The model only knows the vendor and the targets through these texts
HOW: Render with sample vendor/product context and inspect the sections
"""

import pytest

from negbot.agents.prompts import (
    render_leverage_note,
    render_session_instructions,
    render_system_prompt,
)
from negbot.models.negotiation import ProductContext, VendorProfile


@pytest.mark.unit
class TestSessionInstructions:
    """Test instruction rendering."""

    def test_includes_principal_and_tools(self):
        prompt = render_system_prompt("Simon Spatz", "Spatz GmbH")
        assert "Simon Spatz" in prompt
        assert "Spatz GmbH" in prompt
        for tool in ("send_message", "record_state", "finish_negotiation"):
            assert tool in prompt

    def test_vendor_behaviour_and_target_price(self):
        vendor = VendorProfile(id=7, name="Acme Supplies", behaviour="Responds to volume commitments.")
        product = ProductContext(name="Laptop", quantity=20, starting_price=1200, target_reduction=15)

        text = render_session_instructions(vendor, product, "Simon Spatz", "Spatz GmbH")

        assert "Acme Supplies" in text
        assert "Responds to volume commitments." in text
        assert "20 units" in text
        assert "1,020.00" in text
        assert "15%" in text

    def test_without_vendor_profile(self):
        text = render_session_instructions(None, ProductContext(), "Simon Spatz", "Spatz GmbH")
        assert "No vendor profile is available" in text
        assert "Target price" not in text

    def test_user_request_appended(self):
        product = ProductContext(name="Desk", user_request="Delivery before March is mandatory.")
        text = render_session_instructions(None, product, "Simon Spatz", "Spatz GmbH")
        assert text.rstrip().endswith("Delivery before March is mandatory.")


@pytest.mark.unit
class TestProductContext:
    """Test target price derivation."""

    def test_target_price(self):
        assert ProductContext(starting_price=1000, target_reduction=10).target_price == 900.0

    def test_target_price_needs_both_values(self):
        assert ProductContext(starting_price=1000).target_price is None
        assert ProductContext(target_reduction=10).target_price is None


@pytest.mark.unit
class TestLeverageNote:
    """Test the per-turn leverage note."""

    def test_none_without_announcement(self):
        assert render_leverage_note(None) is None
        assert render_leverage_note("") is None

    def test_wraps_announcement(self):
        note = render_leverage_note("[COMPETITIVE LEVERAGE] A competing vendor has offered 900.00")
        assert "900.00" in note
        assert "anonymous" in note
