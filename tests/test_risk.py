"""
Tests for risk, diversification and health scoring.
"""

from decimal import Decimal

import pytest

from stockfolio.models import AssetCategory, Position, Quote
from stockfolio.analytics.risk import (
    diversification_level,
    diversification_score,
    health_level,
    portfolio_health_score,
    risk_level,
    risk_score,
)
from stockfolio.portfolio.valuation import summarize_valuation, value_positions


class TestRiskScore:
    """Tests for the risk score."""

    def test_empty_portfolio(self):
        """Test that an empty portfolio has no risk."""
        assert risk_score([]) == 0.0

    def test_concentrated_without_movement(self, scenario_valuations):
        """Test fewer than five positions with no daily move."""
        assert risk_score(scenario_valuations) == pytest.approx(8.0)

    def test_spread_portfolio_uses_average_volatility(
        self, diversified_valuations, diversified_quotes
    ):
        """Test six positions: 4 plus twice the mean absolute move."""
        moves = [abs(float(q.daily_change_pct)) for q in diversified_quotes.values()]
        expected = 4.0 + 2.0 * sum(moves) / len(moves)

        score = risk_score(diversified_valuations)

        assert score == pytest.approx(expected)
        assert risk_level(score) == "Medium"

    def test_clamped_to_ten(self):
        """Test that a very volatile portfolio is capped at 10."""
        quotes = {
            "XYZ": Quote(
                symbol="XYZ",
                display_name="XYZ",
                price=Decimal("150"),
                daily_change=Decimal("50"),
            ),
        }
        positions = [Position(symbol="XYZ", quantity=1, average_cost=Decimal("100"))]

        assert risk_score(value_positions(positions, quotes)) == 10.0

    @pytest.mark.parametrize("count,expected", [(1, 8.0), (4, 8.0), (5, 4.0), (6, 4.0)])
    def test_concentration_boundary(self, count, expected):
        """Test that concentration drops from 8 to 4 at five positions."""
        positions = [
            Position(symbol=f"S{i}", quantity=1, average_cost=Decimal("100"))
            for i in range(count)
        ]

        assert risk_score(value_positions(positions, {})) == expected

    def test_unquoted_positions_ignored_for_volatility(self, scenario_positions):
        """Test that positions valued at cost add no volatility."""
        valuations = value_positions(scenario_positions, {})

        assert risk_score(valuations) == pytest.approx(8.0)


class TestDiversificationScore:
    """Tests for the diversification score."""

    def test_empty_portfolio(self):
        """Test that an empty portfolio scores zero."""
        assert diversification_score([]) == 0.0

    def test_single_category(self, scenario_valuations):
        """Test one category and two positions."""
        score = diversification_score(scenario_valuations)

        assert score == pytest.approx(2.5)
        assert diversification_level(score) == "Poor"

    def test_all_categories(self, diversified_valuations):
        """Test every category with six positions."""
        score = diversification_score(diversified_valuations)

        assert score == pytest.approx(9.0)
        assert diversification_level(score) == "Excellent"

    def test_position_score_capped(self):
        """Test that position count contributes at most 4."""
        quotes = {
            f"S{i}": Quote(
                symbol=f"S{i}",
                display_name=f"S{i}",
                price=Decimal("10"),
                category=AssetCategory.EQUITY,
            )
            for i in range(20)
        }
        positions = [
            Position(symbol=symbol, quantity=1, average_cost=Decimal("10"))
            for symbol in quotes
        ]

        score = diversification_score(value_positions(positions, quotes))

        assert score == pytest.approx(1.5 + 4.0)


class TestBands:
    """Tests for score band labels."""

    @pytest.mark.parametrize(
        "score,expected",
        [(0.0, "Low"), (2.99, "Low"), (3.0, "Medium"), (6.0, "High"), (8.0, "Very High"), (10.0, "Very High")],
    )
    def test_risk_bands(self, score, expected):
        """Test risk band edges."""
        assert risk_level(score) == expected

    @pytest.mark.parametrize(
        "score,expected",
        [(1.0, "Poor"), (3.0, "Fair"), (7.99, "Good"), (8.0, "Excellent")],
    )
    def test_diversification_bands(self, score, expected):
        """Test diversification band edges."""
        assert diversification_level(score) == expected


class TestHealthScore:
    """Tests for the blended health score."""

    def test_scenario_health(self, scenario_valuations):
        """Test performance 4 + risk 0.8 + diversification 1.0."""
        metrics = summarize_valuation(
            scenario_valuations,
            risk_score=risk_score(scenario_valuations),
            diversification_score=diversification_score(scenario_valuations),
        )

        score = portfolio_health_score(metrics)

        assert score == pytest.approx(5.8)
        assert health_level(score) == "Fair"

    def test_large_loss_has_no_performance_component(self, scenario_positions):
        """Test that -20% or worse contributes nothing."""
        valuations = value_positions(scenario_positions, {})
        metrics = summarize_valuation(valuations, risk_score=10.0, diversification_score=0.0)
        metrics.total_gain_loss_pct = Decimal("-35")

        assert portfolio_health_score(metrics) == pytest.approx(0.0)

    def test_flat_portfolio(self, scenario_positions):
        """Test a portfolio at cost with no risk and full diversification."""
        valuations = value_positions(scenario_positions, {})
        metrics = summarize_valuation(valuations, risk_score=0.0, diversification_score=10.0)

        # 2 + 4 + 4
        assert portfolio_health_score(metrics) == pytest.approx(10.0)
