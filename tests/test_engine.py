"""Tests for ContributionEngine.invoke: scenarios, invariants and error handling."""

import random
from decimal import Decimal

import pytest

from allocator_config import AppConfig, PricingConfig
from contribution_allocator import (
    ConfigurationError,
    ContributionEngine,
    FundStatus,
    InputValidationError,
    ModelFund,
    PricingAnomalyError,
    default_rule_set,
)


@pytest.fixture
def engine(app_config):
    return ContributionEngine(config=app_config)


class TestScenarios:
    """End-to-end scenarios with hand-checked outcomes."""

    def test_single_fund_sequential(self, engine, make_holdings, make_fund, make_rules):
        """Nothing held, one fund at 100 with ceiling 120, 250 to invest sequentially."""
        funds = [make_fund("ABCD11", 100, 120, 100)]

        result = engine.invoke(make_holdings(), funds, make_rules(sequential_allocation=True), 250)

        assert len(result.lines) == 1
        line = result.lines[0]
        assert (line.ticker, line.quantity, line.amount) == ("ABCD11", 2, Decimal("200"))
        assert result.remainder == Decimal("50")
        assert result.total_invested == Decimal("200")
        assert result.funds_recommended == 1
        assert result.balance_achieved is True

    def test_equal_scores_proportional_fallback(self, engine, make_holdings, make_fund, make_rules):
        """Two zero-score funds at 50 and 70 split 100 evenly, leftover goes to the top rank."""
        funds = [make_fund("FUND70", 70, 70, 0), make_fund("FUND50", 50, 50, 0)]

        result = engine.invoke(make_holdings(), funds, make_rules(), Decimal("100"))

        assert [c.composite_score for c in result.candidates[:2]] == [Decimal("0"), Decimal("0")]
        assert [(line.ticker, line.quantity) for line in result.lines] == [("FUND50", 2)]
        assert result.remainder == Decimal("0")

    def test_discount_gate_excludes_fund(self, engine, make_holdings, make_fund, make_rules):
        """With a 5% minimum and no-discount disallowed, a 2% discount fund is never bought."""
        rules = make_rules(allow_no_discount=False, minimum_discount=Decimal("5"))
        funds = [make_fund("GATE11", 98, 100, 95), make_fund("PASS11", 90, 100, 5)]

        result = engine.invoke(make_holdings(), funds, rules, 1000)

        assert "GATE11" not in {line.ticker for line in result.lines}
        assert next(c for c in result.candidates if c.ticker == "GATE11").eligible is False
        assert [c.ticker for c in result.waiting] == ["GATE11"]

    def test_cash_below_every_price(self, engine, make_holdings, make_fund, make_rules):
        """Cash too small for any share yields no lines and the full remainder."""
        funds = [make_fund("AAAA11", 50, 60, 50), make_fund("BBBB11", 70, 80, 50)]

        for sequential in (True, False):
            result = engine.invoke(make_holdings(), funds, make_rules(sequential_allocation=sequential), 40)

            assert result.lines == []
            assert result.remainder == Decimal("40")
            assert result.total_invested == Decimal("0")
            assert result.balance_achieved is True

    def test_no_eligible_fund_is_not_an_error(self, engine, make_holdings, make_fund, make_rules):
        """Every fund failing the gate returns an empty result with the whole amount left."""
        rules = make_rules(allow_no_discount=False, minimum_discount=Decimal("20"))
        funds = [make_fund("AAAA11", 95, 100, 50), make_fund("BBBB11", 100, 100, 50)]

        result = engine.invoke(make_holdings(), funds, rules, 500)

        assert result.lines == []
        assert result.funds_recommended == 0
        assert result.remainder == Decimal("500")
        assert result.balance_achieved is True
        assert "No model fund is eligible for this contribution" in result.warnings

    def test_post_contribution_percent(self, engine, make_holdings, make_fund, make_rules):
        """Each line reports the fund's weight after the whole contribution."""
        holdings = make_holdings({"HELD11": 100})
        funds = [make_fund("HELD11", 10, 10, 50), make_fund("NEWW11", 10, 10, 50)]

        result = engine.invoke(holdings, funds, make_rules(sequential_allocation=True), 100)

        assert [(line.ticker, line.quantity) for line in result.lines] == [("NEWW11", 10)]
        assert result.lines[0].post_contribution_percent == Decimal("50")
        assert result.lines[0].current_percent == Decimal("0")

    def test_result_carries_rules_and_version(self, engine, make_holdings, make_fund, make_rules):
        """The result records the rules applied and the algorithm version."""
        rules = make_rules(name="Conservative")

        result = engine.invoke(make_holdings(), [make_fund("AAAA11", 10, 12, 100)], rules, 100)

        assert result.rules_applied == rules
        assert result.algorithm_version == "1.0.0"
        assert result.cash_amount == Decimal("100")


@pytest.mark.property
class TestInvariants:
    """Conservation, no overspend, determinism."""

    @staticmethod
    def _random_request(seed, make_holdings, make_fund, make_rules):
        rng = random.Random(seed)
        tickers = [f"F{i:03d}11" for i in range(rng.randint(1, 8))]
        funds = [
            make_fund(
                ticker,
                price=Decimal(rng.randint(500, 20000)) / 100,
                ceiling=Decimal(rng.randint(500, 20000)) / 100,
                target=rng.randint(0, 30),
            )
            for ticker in tickers
        ]
        held = {t: Decimal(rng.randint(0, 500000)) / 100 for t in rng.sample(tickers, k=len(tickers) // 2)}
        held["OUTSIDE11"] = Decimal(rng.randint(0, 100000)) / 100
        rules = make_rules(
            sequential_allocation=rng.random() < 0.5,
            max_funds=rng.randint(1, 6),
            imbalance_weight=(weight := rng.randint(0, 100)),
            discount_weight=100 - weight,
            allow_no_discount=rng.random() < 0.5,
            minimum_discount=Decimal(rng.randint(0, 10)),
        )
        cash = Decimal(rng.randint(5000, 500000)) / 100
        return make_holdings(held), funds, rules, cash

    @pytest.mark.parametrize("seed", range(25))
    def test_conservation_and_no_overspend(self, engine, make_holdings, make_fund, make_rules, seed):
        """Invested plus remainder equals cash exactly and nothing is overspent."""
        holdings, funds, rules, cash = self._random_request(seed, make_holdings, make_fund, make_rules)

        result = engine.invoke(holdings, funds, rules, cash)

        assert sum((line.amount for line in result.lines), Decimal("0")) + result.remainder == cash
        assert result.total_invested <= cash
        assert result.remainder >= 0
        available = cash
        for line in result.lines:
            assert line.quantity >= 1
            assert line.amount == line.price * line.quantity
            assert line.amount <= available
            available -= line.amount
        assert len(result.lines) <= rules.max_funds

    @pytest.mark.parametrize("seed", range(5))
    def test_identical_inputs_identical_output(self, engine, make_holdings, make_fund, make_rules, seed):
        """Two runs over the same snapshots serialize identically."""
        holdings, funds, rules, cash = self._random_request(seed, make_holdings, make_fund, make_rules)

        first = engine.invoke(holdings, funds, rules, cash)
        second = ContributionEngine(config=AppConfig()).invoke(holdings, funds, rules, cash)

        assert first.model_dump_json() == second.model_dump_json()


class _FailingPrioritization:
    def prioritize(self, *args, **kwargs):
        raise AssertionError("scoring must not run")


class TestRuleValidation:
    """Rule sets are validated before any scoring."""

    @pytest.mark.parametrize("weights", [(60, 30), (50, 60), (0, 0), (100, 1)])
    def test_weights_must_sum_to_100(self, engine, make_holdings, make_fund, make_rules, weights):
        """Weights not summing to 100 raise ConfigurationError without scoring."""
        engine.prioritization = _FailingPrioritization()
        rules = make_rules(imbalance_weight=weights[0], discount_weight=weights[1])

        with pytest.raises(ConfigurationError, match="must equal 100"):
            engine.invoke(make_holdings(), [make_fund("AAAA11", 10, 12, 50)], rules, 100)

    @pytest.mark.parametrize(
        "overrides,message",
        [
            ({"max_funds": 0}, "max_funds"),
            ({"max_funds": 21}, "max_funds"),
            ({"imbalance_tolerance": Decimal("-1")}, "imbalance_tolerance"),
            ({"minimum_discount": Decimal("150")}, "minimum_discount"),
            ({"imbalance_weight": 120, "discount_weight": -20}, "imbalance_weight"),
        ],
    )
    def test_structural_bounds(self, engine, make_holdings, make_fund, make_rules, overrides, message):
        """Out-of-range rule values are rejected and named in the error."""
        rules = make_rules(**overrides)

        with pytest.raises(ConfigurationError) as exc_info:
            engine.invoke(make_holdings(), [make_fund("AAAA11", 10, 12, 50)], rules, 100)

        assert any(message in error for error in exc_info.value.errors)

    def test_missing_rule_set(self, engine, make_holdings, make_fund):
        """Passing no rule set is a configuration error, not an implicit default."""
        with pytest.raises(ConfigurationError):
            engine.invoke(make_holdings(), [make_fund("AAAA11", 10, 12, 50)], None, 100)

    def test_default_rule_set_is_valid(self, app_config):
        """The documented default passes validation."""
        rules = default_rule_set(app_config)

        assert rules.validation_errors() == []
        assert (rules.minimum_discount, rules.allow_no_discount, rules.imbalance_tolerance) == (0, True, 2)
        assert (rules.imbalance_weight, rules.discount_weight, rules.max_funds) == (60, 40, 5)
        assert rules.sequential_allocation is False


class TestInputValidation:
    """Malformed inputs raise InputValidationError naming the field."""

    @pytest.mark.parametrize("cash", [0, -10, "abc", None, True, float("nan")])
    def test_cash_must_be_positive_number(self, engine, make_holdings, make_fund, make_rules, cash):
        """Cash must be a finite number greater than zero."""
        with pytest.raises(InputValidationError) as exc_info:
            engine.invoke(make_holdings(), [make_fund("AAAA11", 10, 12, 50)], make_rules(), cash)

        assert exc_info.value.field == "cash_amount"

    def test_engine_accepts_small_positive_cash(self, engine, make_holdings, make_fund, make_rules):
        """The engine itself only requires cash above zero."""
        result = engine.invoke(make_holdings(), [make_fund("AAAA11", 1, 2, 50)], make_rules(), "1.5")

        assert result.total_invested == Decimal("1")

    def test_empty_model_funds(self, engine, make_holdings, make_rules):
        """An empty model portfolio is rejected."""
        with pytest.raises(InputValidationError) as exc_info:
            engine.invoke(make_holdings(), [], make_rules(), 100)

        assert exc_info.value.field == "model_funds"

    def test_duplicate_model_ticker(self, engine, make_holdings, make_fund, make_rules):
        """Each model fund ticker appears once."""
        funds = [make_fund("AAAA11", 10, 12, 50), make_fund("AAAA11", 11, 12, 50)]

        with pytest.raises(InputValidationError) as exc_info:
            engine.invoke(make_holdings(), funds, make_rules(), 100)

        assert exc_info.value.field == "model_funds[1].ticker"

    def test_target_out_of_range(self, engine, make_holdings, make_fund, make_rules):
        """Target allocation must lie between 0 and 100."""
        with pytest.raises(InputValidationError) as exc_info:
            engine.invoke(make_holdings(), [make_fund("AAAA11", 10, 12, 120)], make_rules(), 100)

        assert exc_info.value.field == "model_funds[0].target_percent"

    def test_negative_position_value(self, engine, make_holdings, make_fund, make_rules):
        """A holdings snapshot with a negative value is malformed."""
        holdings = make_holdings({"AAAA11": -5})

        with pytest.raises(InputValidationError) as exc_info:
            engine.invoke(holdings, [make_fund("AAAA11", 10, 12, 50)], make_rules(), 100)

        assert exc_info.value.field == "holdings.positions[0].current_value"

    def test_missing_holdings(self, engine, make_fund, make_rules):
        """A missing snapshot is rejected."""
        with pytest.raises(InputValidationError) as exc_info:
            engine.invoke(None, [make_fund("AAAA11", 10, 12, 50)], make_rules(), 100)

        assert exc_info.value.field == "holdings"


class TestPricingAnomalies:
    """Funds with non-positive prices."""

    @staticmethod
    def _funds(make_fund):
        return [
            make_fund("GOOD11", 10, 12, 50),
            ModelFund(ticker="ZERO11", current_price=Decimal("0"), ceiling_price=Decimal("12"),
                      target_percent=Decimal("30")),
            ModelFund(ticker="NOCL11", current_price=Decimal("10"), ceiling_price=Decimal("-1"),
                      target_percent=Decimal("20")),
        ]

    def test_lenient_mode_excludes_and_reports(self, engine, make_holdings, make_fund, make_rules):
        """Anomalous funds are dropped and reported while the rest are allocated."""
        result = engine.invoke(make_holdings(), self._funds(make_fund), make_rules(), 100)

        assert [a.ticker for a in result.anomalies] == ["ZERO11", "NOCL11"]
        assert {c.ticker for c in result.candidates} == {"GOOD11"}
        assert [(line.ticker, line.quantity) for line in result.lines] == [("GOOD11", 10)]
        assert any("ZERO11" in w for w in result.warnings)

    def test_strict_mode_argument_raises(self, engine, make_holdings, make_fund, make_rules):
        """strict_pricing=True turns an anomaly into a failure."""
        with pytest.raises(PricingAnomalyError) as exc_info:
            engine.invoke(make_holdings(), self._funds(make_fund), make_rules(), 100, strict_pricing=True)

        assert [a.ticker for a in exc_info.value.anomalies] == ["ZERO11", "NOCL11"]

    def test_strict_mode_from_config(self, make_holdings, make_fund, make_rules):
        """The configured pricing mode applies when no argument is given."""
        engine = ContributionEngine(config=AppConfig(pricing=PricingConfig(strict_mode=True)))

        with pytest.raises(PricingAnomalyError):
            engine.invoke(make_holdings(), self._funds(make_fund), make_rules(), 100)

    def test_only_anomalies_leaves_no_eligible_fund(self, engine, make_holdings, make_rules):
        """If every fund is anomalous the run ends with no allocation."""
        funds = [ModelFund(ticker="ZERO11", current_price=Decimal("0"), ceiling_price=Decimal("12"),
                           target_percent=Decimal("100"))]

        result = engine.invoke(make_holdings(), funds, make_rules(), 100)

        assert result.lines == []
        assert result.remainder == Decimal("100")
        assert result.candidates == []


class TestStatusReporting:
    """Candidate status and rationale are filled for every scored fund."""

    def test_every_candidate_has_rationale(self, engine, make_holdings, make_fund, make_rules):
        """Selected, waiting and capped funds each explain themselves."""
        rules = make_rules(allow_no_discount=False, minimum_discount=Decimal("1"), max_funds=1)
        funds = [
            make_fund("AAAA11", 90, 100, 40),
            make_fund("BBBB11", 95, 100, 30),
            make_fund("CCCC11", 105, 100, 30),
        ]

        result = engine.invoke(make_holdings(), funds, rules, 1000)

        statuses = {c.ticker: c.status for c in result.candidates}
        assert statuses == {
            "AAAA11": FundStatus.BUY_NOW,
            "BBBB11": FundStatus.DO_NOT_INVEST,
            "CCCC11": FundStatus.WAIT_FOR_DISCOUNT,
        }
        assert all(c.rationale for c in result.candidates)
        assert "Priority #1" in result.candidates[0].rationale
