"""
Tests for alert evaluation and lifecycle.
"""

import dataclasses
from decimal import Decimal
from unittest import mock

import pytest
from django.contrib.contenttypes.models import ContentType
from django.test import override_settings

from agrostock import InvalidTransition, StockError, stock
from agrostock import rules as registry
from agrostock.models import Alert, AlertOrigin, AlertStatus, Input, Plot
from agrostock.services.alerts import AlertEngine
from agrostock.signals import alert_closed, alert_created


pytestmark = pytest.mark.django_db


@pytest.fixture
def expiring_urea(stocked_urea, in_days):
    stocked_urea.expiration_date = in_days(10)
    stocked_urea.save(update_fields=['expiration_date'])
    return stocked_urea


@pytest.fixture
def stressed_field(field_plot):
    field_plot.ndvi_value = Decimal('0.25')
    field_plot.save(update_fields=['ndvi_value'])
    return field_plot


class TestEvaluate:

    def test_creates_alert_once(self, expiring_urea):
        first = stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])
        second = stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])

        [alert] = first.created
        assert alert.entity == expiring_urea
        assert alert.rule_id == 'input_expiring'
        assert alert.status == AlertStatus.PENDING
        assert alert.origin == AlertOrigin.AUTOMATIC
        assert alert.priority == 'high'
        assert alert.title == 'Vence en 10 días: Urea'
        assert second.created == []
        assert Alert.objects.count() == 1

    def test_condition_cleared_completes_alert(self, expiring_urea, in_days):
        [alert] = stock.evaluate_alerts(firm_id=1, rules=['input_expiring']).created

        Input.objects.filter(pk=expiring_urea.pk).update(expiration_date=in_days(200))
        result = stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])

        [closed] = result.closed
        assert closed.pk == alert.pk
        assert closed.status == AlertStatus.COMPLETED
        assert closed.resolved_at is not None
        assert not Alert.objects.pending().exists()

    def test_alert_closed_meanwhile_is_skipped(self, expiring_urea, depot_a, in_days):
        glifosato = Input.objects.create(depot=depot_a, name='Glifosato', unit='lt',
                                         expiration_date=in_days(10))
        created = stock.evaluate_alerts(firm_id=1, rules=['input_expiring']).created
        urea_alert = Alert.objects.for_entity(expiring_urea).get()
        other_alert = Alert.objects.for_entity(glifosato).get()
        assert len(created) == 2

        def resolved_elsewhere(input, params):
            # Someone resolves the urea alert while the pass is running
            Alert.objects.filter(pk=urea_alert.pk).update(status=AlertStatus.COMPLETED)
            return False

        rule = dataclasses.replace(registry.get_rule('input_expiring'),
                                   predicate=resolved_elsewhere)
        with mock.patch.dict(registry._registry, {'input_expiring': rule}):
            result = stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])

        assert [a.pk for a in result.closed] == [other_alert.pk]
        assert not Alert.objects.pending().exists()

    def test_inapplicable_rule_leaves_alert_alone(self, expiring_urea):
        stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])

        Input.objects.filter(pk=expiring_urea.pk).update(expiration_date=None)
        result = stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])

        assert result.closed == []
        assert Alert.objects.pending().count() == 1

    def test_low_stock_from_exit(self, stocked_urea):
        Input.objects.filter(pk=stocked_urea.pk).update(min_stock=Decimal('50'))
        assert stock.evaluate_alerts(firm_id=1, rules=['input_low_stock']).created == []

        stock.register_movement(stocked_urea, 'exit', 60, reference='Aplicación lote 7')
        [alert] = stock.evaluate_alerts(firm_id=1, rules=['input_low_stock']).created

        assert alert.metadata['balance'] == '40.000'

    def test_plot_rules(self, stressed_field, paddock):
        result = stock.evaluate_alerts(
            firm_id=1, scope='plots', rules=['ndvi_low', 'pasture_measurement_stale'],
        )

        found = {(a.rule_id, a.object_id) for a in result.created}
        assert found == {
            ('ndvi_low', stressed_field.pk),
            ('pasture_measurement_stale', paddock.pk),
        }

    def test_scope_inputs_skips_plots(self, expiring_urea, stressed_field):
        result = stock.evaluate_alerts(firm_id=1, scope='inputs')
        assert {a.rule_id for a in result.created} == {'input_expiring'}

    def test_premise_filter(self, stressed_field):
        Plot.objects.filter(pk=stressed_field.pk).update(premise_id=99)

        assert stock.evaluate_alerts(firm_id=1, premise_id=10, rules=['ndvi_low']).created == []
        assert len(stock.evaluate_alerts(firm_id=1, premise_id=99, rules=['ndvi_low']).created) == 1

    def test_other_firm_not_evaluated(self, expiring_urea):
        assert stock.evaluate_alerts(firm_id=2).created == []

    @override_settings(AGROSTOCK={'DISABLED_ALERT_RULES': ['input_expiring']})
    def test_disabled_rule_not_evaluated(self, expiring_urea):
        result = stock.evaluate_alerts(firm_id=1, scope='inputs')
        assert result.created == []

    def test_unknown_rule(self, firm_id):
        with pytest.raises(StockError) as exc:
            stock.evaluate_alerts(firm_id=firm_id, rules=['frost_warning'])
        assert exc.value.code == 'UNKNOWN_RULE'

    def test_invalid_scope(self, firm_id):
        with pytest.raises(StockError) as exc:
            stock.evaluate_alerts(firm_id=firm_id, scope='animals')
        assert exc.value.code == 'INVALID_SCOPE'

    def test_signals_on_commit(self, expiring_urea, in_days, django_capture_on_commit_callbacks):
        events = []

        def on_created(sender, alert, **kwargs):
            events.append(('created', alert.rule_id))

        def on_closed(sender, alert, **kwargs):
            events.append(('closed', alert.rule_id))

        alert_created.connect(on_created)
        alert_closed.connect(on_closed)
        try:
            with django_capture_on_commit_callbacks(execute=True):
                stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])
            Input.objects.filter(pk=expiring_urea.pk).update(expiration_date=in_days(200))
            with django_capture_on_commit_callbacks(execute=True):
                stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])
        finally:
            alert_created.disconnect(on_created)
            alert_closed.disconnect(on_closed)

        assert events == [('created', 'input_expiring'), ('closed', 'input_expiring')]


class TestLifecycle:

    def test_resolve(self, expiring_urea):
        [alert] = stock.evaluate_alerts(firm_id=1, rules=['input_expiring']).created

        resolved = stock.resolve_alert(alert)

        assert resolved.status == AlertStatus.COMPLETED
        assert alert.status == AlertStatus.COMPLETED

    def test_cancelled_alert_raised_again(self, expiring_urea):
        [alert] = stock.evaluate_alerts(firm_id=1, rules=['input_expiring']).created
        stock.cancel_alert(alert)

        [again] = stock.evaluate_alerts(firm_id=1, rules=['input_expiring']).created

        assert again.pk != alert.pk
        assert Alert.objects.filter(rule_id='input_expiring').count() == 2
        assert Alert.objects.pending().count() == 1

    def test_closed_alert_cannot_close_again(self, expiring_urea):
        [alert] = stock.evaluate_alerts(firm_id=1, rules=['input_expiring']).created
        stock.resolve_alert(alert.pk)

        with pytest.raises(InvalidTransition):
            stock.cancel_alert(alert.pk)

    def test_concurrent_insert_is_deduplicated(self, expiring_urea):
        ct = ContentType.objects.get_for_model(Input)
        args = (1, ct, expiring_urea.pk, 'input_expiring', 'high',
                AlertOrigin.AUTOMATIC, 'Vence pronto', '', {})

        assert AlertEngine._open(*args) is not None
        assert AlertEngine._open(*args) is None
        assert Alert.objects.count() == 1


class TestManualAlerts:

    def test_create_manual_alert(self, paddock):
        alert = stock.create_manual_alert(
            firm_id=1, entity=paddock, rule_id='inspection',
            title='Revisar aguada', description='Bebedero sin flotante',
        )

        assert alert.origin == AlertOrigin.MANUAL
        assert alert.priority == 'medium'
        assert alert.entity == paddock

    def test_existing_pending_alert_returned(self, paddock):
        first = stock.create_manual_alert(firm_id=1, entity=paddock, rule_id='inspection',
                                          title='Revisar aguada')
        second = stock.create_manual_alert(firm_id=1, entity=paddock, rule_id='inspection',
                                           title='Otra vez')

        assert second.pk == first.pk
        assert second.title == 'Revisar aguada'

    def test_title_required(self, paddock):
        with pytest.raises(StockError) as exc:
            stock.create_manual_alert(firm_id=1, entity=paddock, rule_id='inspection', title=' ')
        assert exc.value.code == 'TITLE_REQUIRED'


class TestAlertQueries:

    def test_active_alerts_and_stats(self, expiring_urea, stressed_field, paddock):
        stock.evaluate_alerts(firm_id=1, rules=['input_expiring', 'ndvi_low'])
        manual = stock.create_manual_alert(firm_id=1, entity=paddock, rule_id='inspection',
                                           title='Revisar aguada', priority='low')
        stock.cancel_alert(manual)

        active = stock.active_alerts(firm_id=1)
        assert {a.rule_id for a in active} == {'input_expiring', 'ndvi_low'}
        assert list(stock.active_alerts(firm_id=1, rule_id='ndvi_low')) == [
            Alert.objects.get(rule_id='ndvi_low'),
        ]
        assert stock.active_alerts(firm_id=1, priority='low').count() == 0

        stats = stock.alert_stats(firm_id=1)
        assert stats['total'] == 3
        assert stats['pending'] == 2
        assert stats['cancelled'] == 1
        assert stats['completed'] == 0
        assert stats['by_rule'] == {'input_expiring': 1, 'ndvi_low': 1}
        assert stats['by_priority'] == {'high': 2, 'medium': 0, 'low': 0}

    def test_for_entity(self, expiring_urea):
        stock.evaluate_alerts(firm_id=1, rules=['input_expiring'])
        assert Alert.objects.for_entity(expiring_urea).count() == 1
