"""Tests for application settings."""

from pydantic import SecretStr

from patissio.config.settings import Settings


class TestSettings:
    """Tests for Settings helpers."""

    def test_price_lookup(self, test_settings: Settings) -> None:
        assert test_settings.get_price_id("pro", "monthly") == "price_pro_monthly"
        assert test_settings.get_price_id("premium", "yearly") == "price_premium_yearly"
        assert test_settings.get_price_id("starter", "monthly") == ""

    def test_reverse_price_lookup(self, test_settings: Settings) -> None:
        assert test_settings.get_plan_for_price("price_premium_monthly") == ("premium", "monthly")
        assert test_settings.get_plan_for_price("price_unknown") is None
        assert test_settings.get_plan_for_price("") is None

    def test_provider_flags(self) -> None:
        settings = Settings(
            STRIPE_SECRET_KEY=None, VERCEL_API_TOKEN=SecretStr("t"), VERCEL_PROJECT_ID=None
        )
        assert not settings.stripe_configured
        assert not settings.vercel_configured

    def test_secrets_are_masked(self, test_settings: Settings) -> None:
        assert "sk_test_dummy" not in repr(test_settings)
