"""Integration tests for the CLI — raw option strings through to rendered results."""
from unittest import mock

import pytest
import requests
from click.testing import CliRunner

from naca_calculator.cli import main

OPTIONS = {15: (5.5, 6.5), 20: (5.875, 6.875), 30: (6.125, 7.125)}

NACA_PAGE = """
<script>
function fillRate() {
  var thirtyYearRate = "6.125%";
  var twentyYearRate = "5.875%";
  var fifteenYearRate = "5.5%";
}
</script>
"""


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _calc(runner, *args, **kwargs):
    return runner.invoke(main, ["calculate", *args], **kwargs)


class TestHelp:
    def test_group_help(self, runner):
        result = runner.invoke(main, ["--help"])
        assert result.exit_code == 0
        for command in ("calculate", "buydown", "rates"):
            assert command in result.output

    def test_calculate_help(self, runner):
        result = _calc(runner, "--help")
        assert result.exit_code == 0
        assert "--mode" in result.output


class TestCalculate:
    def test_price_mode(self, runner):
        result = _calc(runner, "--mode", "price", "--price", "300000", "--rate", "6.125")
        assert result.exit_code == 0, result.output
        assert "$300,000.00" in result.output
        assert "$375.00" in result.output
        assert "$1,822.83" in result.output

    def test_payment_mode_echoes_desired_payment(self, runner):
        result = _calc(runner, "--price", "2500", "--rate", "6.125", "--term", "20")
        assert result.exit_code == 0, result.output
        assert "Affordable purchase price" in result.output
        assert "$2,500.00" in result.output

    def test_price_prompted_when_missing(self, runner):
        result = _calc(runner, "--mode", "price", "--rate", "6.125", input="300000\n")
        assert result.exit_code == 0, result.output
        assert "$300,000.00" in result.output

    def test_validation_errors_listed(self, runner):
        result = _calc(runner, "--price", "300000abc", "--rate", "6.125", "--term", "25", "--tax", "-1")
        assert result.exit_code == 1
        assert "Price/Payment" in result.output
        assert "Loan Term" in result.output
        assert "Property Tax" in result.output
        assert "Must be non-negative" in result.output

    def test_desired_rate_prices_buydown(self, runner):
        result = _calc(
            runner, "--mode", "price", "--price", "300000", "--rate", "6.5", "--desired-rate", "6.0",
        )
        assert result.exit_code == 0, result.output
        assert "$9,000.00" in result.output

    def test_buydown_cap_noted(self, runner):
        result = _calc(
            runner, "--mode", "price", "--price", "300000", "--rate", "6.5", "--desired-rate", "4.0",
        )
        assert result.exit_code == 0, result.output
        assert "cap reached" in result.output

    def test_rate_prompted_with_higher_published_option_as_default(self, runner):
        with mock.patch("naca_calculator.cli.RateStore") as store_cls:
            store_cls.return_value.get.return_value = OPTIONS
            store_cls.return_value.last_fetch_failed = False
            result = _calc(runner, "--mode", "price", "--price", "300000", input="\n")
        assert result.exit_code == 0, result.output
        assert "[7.125]" in result.output
        assert "$300,000.00" in result.output

    def test_prompted_rate_is_used(self, runner):
        with mock.patch("naca_calculator.cli.RateStore") as store_cls:
            store_cls.return_value.get.return_value = OPTIONS
            store_cls.return_value.last_fetch_failed = False
            result = _calc(runner, "--mode", "price", "--price", "300000", input="6.125\n")
        assert result.exit_code == 0, result.output
        assert "$1,822.83" in result.output

    def test_rates_fetched_once_for_prompt_and_check(self, runner):
        with mock.patch(
            "naca_calculator.rates.requests.get", side_effect=requests.ConnectionError("down"),
        ) as get:
            result = _calc(runner, "--mode", "price", "--price", "300000", "--check-rates", input="\n")
        assert result.exit_code == 0, result.output
        assert "[7]" in result.output
        assert get.call_count == 1

    def test_no_fetch_when_rate_given(self, runner):
        with mock.patch("naca_calculator.cli.RateStore") as store_cls:
            result = _calc(runner, "--mode", "price", "--price", "300000", "--rate", "6.125")
        assert result.exit_code == 0, result.output
        store_cls.assert_not_called()

    def test_check_rates_rejects_unoffered_rate(self, runner):
        with mock.patch("naca_calculator.cli.RateStore") as store_cls:
            store_cls.return_value.get.return_value = OPTIONS
            store_cls.return_value.last_fetch_failed = False
            result = _calc(runner, "--mode", "price", "--price", "300000", "--rate", "6.0", "--check-rates")
        assert result.exit_code == 1
        assert "Invalid rate for 30-year term" in result.output


class TestBuydown:
    def test_cost(self, runner):
        result = runner.invoke(main, ["buydown", "300000", "6.5", "6.0", "15"])
        assert result.exit_code == 0, result.output
        assert "$6,000.00" in result.output


class TestRates:
    def test_published_rates(self, runner):
        with mock.patch("naca_calculator.rates.requests.get") as get:
            get.return_value.json.return_value = {
                "thirty_year_rate": "6.125",
                "twenty_year_rate": "5.875",
                "fifteen_year_rate": "5.5",
            }
            result = runner.invoke(main, ["rates"])
        assert result.exit_code == 0, result.output
        assert "6.125% / 7.125%" in result.output
        assert "defaults" not in result.output

    def test_fallback_to_defaults(self, runner):
        with mock.patch("naca_calculator.rates.requests.get", side_effect=requests.ConnectionError("down")):
            result = runner.invoke(main, ["rates"])
        assert result.exit_code == 0
        assert "6% / 7%" in result.output

    def test_naca_page_source(self, runner):
        with mock.patch("naca_calculator.rates.requests.get") as get:
            get.return_value.text = NACA_PAGE
            result = runner.invoke(main, ["rates", "--source", "naca"])
        assert result.exit_code == 0, result.output
        assert "6.125% / 7.125%" in result.output
        assert get.call_args.args[0].startswith("http")
