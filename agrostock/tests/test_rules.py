"""
Tests for the alert rule registry and rule predicates.
"""

from datetime import date, datetime, timedelta
from datetime import timezone as dt_timezone
from decimal import Decimal

import pytest
from django.test import override_settings
from django.utils import timezone

from agrostock import StockError, stock
from agrostock import rules as registry
from agrostock.models import LandUse, Movement, Plot


pytestmark = pytest.mark.django_db


def check(rule_id, entity, today):
    rule = registry.get_rule(rule_id)
    return rule.predicate(entity, rule.params(today))


class TestRegistry:

    def test_builtin_rules_registered(self):
        ids = {r.id for r in registry.all_rules()}
        assert ids >= {
            'input_expiring', 'input_expired', 'input_low_stock',
            'pasture_critical', 'pasture_measurement_stale',
            'depot_unattended', 'ndvi_low',
        }

    def test_unknown_rule(self):
        with pytest.raises(StockError) as exc:
            registry.get_rule('frost_warning')
        assert exc.value.code == 'UNKNOWN_RULE'

    def test_enabled_rules_by_entity(self):
        assert {r.entity for r in registry.enabled_rules(registry.INPUT)} == {registry.INPUT}
        assert {r.entity for r in registry.enabled_rules(registry.PLOT)} == {registry.PLOT}

    @override_settings(AGROSTOCK={'DISABLED_ALERT_RULES': ['ndvi_low']})
    def test_disabled_rules_skipped(self):
        assert 'ndvi_low' not in {r.id for r in registry.enabled_rules()}
        assert registry.get_rule('ndvi_low').id == 'ndvi_low'

    @override_settings(AGROSTOCK={'EXPIRY_WARNING_DAYS': 7})
    def test_params_read_from_settings(self, today):
        params = registry.get_rule('input_expiring').params(today)
        assert params == {'EXPIRY_WARNING_DAYS': 7, 'today': today}

    def test_params_default(self, today):
        assert registry.get_rule('depot_unattended').params(today)['DEPOT_STALE_DAYS'] == 21


class TestInputRules:

    def test_expiring(self, urea, today, in_days):
        urea.expiration_date = in_days(10)
        assert check('input_expiring', urea, today) is True
        assert check('input_expired', urea, today) is False

    def test_expiring_outside_window(self, urea, today, in_days):
        urea.expiration_date = in_days(45)
        assert check('input_expiring', urea, today) is False

    @override_settings(AGROSTOCK={'EXPIRY_WARNING_DAYS': 60})
    def test_expiring_window_from_settings(self, urea, today, in_days):
        urea.expiration_date = in_days(45)
        assert check('input_expiring', urea, today) is True

    def test_expired_on_expiration_day(self, urea, today):
        urea.expiration_date = today
        assert check('input_expired', urea, today) is True
        assert check('input_expiring', urea, today) is False

    def test_no_expiration_does_not_apply(self, urea, today):
        assert check('input_expiring', urea, today) is None
        assert check('input_expired', urea, today) is None

    def test_low_stock(self, stocked_urea, today):
        stocked_urea.min_stock = Decimal('100')
        assert check('input_low_stock', stocked_urea, today) is True

        stocked_urea.min_stock = Decimal('99')
        assert check('input_low_stock', stocked_urea, today) is False

    def test_low_stock_without_minimum(self, urea, today):
        assert check('input_low_stock', urea, today) is None

    def test_messages(self, urea, today, in_days):
        urea.expiration_date = in_days(10)
        rule = registry.get_rule('input_expiring')

        message = rule.render(urea, rule.params(today))

        assert message.title == 'Vence en 10 días: Urea'
        assert 'Galpón 1' in message.description
        assert message.metadata['days_to_expiry'] == 10


class TestPlotRules:

    def test_pasture_critical(self, paddock, today):
        paddock.pasture_height_cm = Decimal('4')
        paddock.target_remnant_cm = Decimal('5')
        assert check('pasture_critical', paddock, today) is True

        paddock.pasture_height_cm = Decimal('5')
        assert check('pasture_critical', paddock, today) is False

    def test_pasture_critical_needs_both_values(self, paddock, today):
        paddock.pasture_height_cm = Decimal('4')
        assert check('pasture_critical', paddock, today) is None

    def test_measurement_never_taken(self, paddock, today):
        assert check('pasture_measurement_stale', paddock, today) is True

    def test_measurement_recent_and_stale(self, paddock, today):
        paddock.pasture_measured_at = today - timedelta(days=14)
        assert check('pasture_measurement_stale', paddock, today) is False

        paddock.pasture_measured_at = today - timedelta(days=15)
        assert check('pasture_measurement_stale', paddock, today) is True

    def test_measurement_only_for_grazed_plots(self, field_plot, today):
        assert check('pasture_measurement_stale', field_plot, today) is None

    def test_depot_unattended(self, depot_a, today):
        assert check('depot_unattended', depot_a, today) is False
        assert check('depot_unattended', depot_a, today + timedelta(days=30)) is True

    def test_incoming_transfer_counts_as_activity(self, stocked_urea, depot_b, today):
        Plot.objects.filter(pk=depot_b.pk).update(
            updated_at=timezone.now() - timedelta(days=60),
        )
        depot_b.refresh_from_db()
        assert check('depot_unattended', depot_b, today) is True

        stock.transfer(stocked_urea, 10, depot_b, reference='Reposición')

        assert registry.last_depot_activity(depot_b) == today
        assert check('depot_unattended', depot_b, today) is False

    @override_settings(TIME_ZONE='America/Argentina/Buenos_Aires')
    def test_activity_date_is_local(self, stocked_urea, depot_b):
        Plot.objects.filter(pk=depot_b.pk).update(
            updated_at=datetime(2026, 1, 5, 12, 0, tzinfo=dt_timezone.utc),
        )
        result = stock.transfer(stocked_urea, 10, depot_b, reference='Reposición')
        # 01:00 UTC is still the previous evening in Buenos Aires
        Movement.objects.filter(transfer_group=result.transfer_group).update(
            timestamp=datetime(2026, 3, 10, 1, 0, tzinfo=dt_timezone.utc),
        )
        depot_b.refresh_from_db()

        assert registry.last_depot_activity(depot_b) == date(2026, 3, 9)

    def test_depot_unattended_only_for_depots(self, paddock, today):
        assert check('depot_unattended', paddock, today) is None

    def test_ndvi_low(self, field_plot, today):
        field_plot.ndvi_value = Decimal('0.31')
        assert check('ndvi_low', field_plot, today) is True

        field_plot.ndvi_value = Decimal('0.62')
        assert check('ndvi_low', field_plot, today) is False

    @override_settings(AGROSTOCK={'NDVI_THRESHOLD': 0.7})
    def test_ndvi_threshold_from_settings(self, field_plot, today):
        field_plot.ndvi_value = Decimal('0.62')
        assert check('ndvi_low', field_plot, today) is True

    def test_ndvi_not_applicable(self, field_plot, today):
        assert check('ndvi_low', field_plot, today) is None

        bare = Plot(code='casco', name='Casco', firm_id=1, land_use=LandUse.OTHER,
                    ndvi_value=Decimal('0.1'))
        assert check('ndvi_low', bare, today) is None
