"""Tests for coin conversion."""

from charsheet.database import MemoryActorStore
from charsheet.systems import calculate_currency_conversion, convert_currency


class TestCalculateCurrencyConversion:
    """Test conversion along the denomination chain."""

    def test_change_carries_upward(self, engine_config):
        """Coins convert into the next denomination and keep carrying."""
        currency = {"pp": 0, "gp": 10, "ep": 0, "sp": 0, "cp": 25}
        assert calculate_currency_conversion(currency, engine_config) == {
            "pp": 1,
            "gp": 0,
            "ep": 0,
            "sp": 2,
            "cp": 5,
        }

    def test_multi_step_conversion(self, engine_config):
        """Silver becomes electrum which becomes gold."""
        currency = {"pp": 0, "gp": 0, "ep": 0, "sp": 10, "cp": 0}
        converted = calculate_currency_conversion(currency, engine_config)
        assert converted["gp"] == 1
        assert converted["ep"] == 0
        assert converted["sp"] == 0

    def test_nothing_to_convert(self, engine_config):
        """Small amounts stay as they are."""
        currency = {"pp": 2, "gp": 9, "ep": 1, "sp": 4, "cp": 9}
        assert calculate_currency_conversion(currency, engine_config) == currency

    def test_input_is_not_modified(self, engine_config):
        """The conversion works on a copy."""
        currency = {"pp": 0, "gp": 0, "ep": 0, "sp": 0, "cp": 100}
        calculate_currency_conversion(currency, engine_config)
        assert currency["cp"] == 100


class TestConvertCurrency:
    """Test persisted conversion."""

    async def test_persisted(self, make_actor, engine_config):
        """Converted coins are saved and mirrored on the document."""
        actor = make_actor()
        actor.system.currency.cp = 150
        store = MemoryActorStore([actor], engine_config)

        await convert_currency(actor, store, engine_config)

        assert actor.system.currency.cp == 0
        assert actor.system.currency.gp == 1
        assert actor.system.currency.ep == 1
        stored = await store.get(actor.id)
        assert stored.system.currency.model_dump() == actor.system.currency.model_dump()
