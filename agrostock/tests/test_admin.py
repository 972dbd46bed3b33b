"""
Tests for the Unfold admin: changelists and actions.
"""

from decimal import Decimal

import pytest
from django.urls import reverse

from agrostock import stock
from agrostock.contrib.admin_unfold import format_quantity
from agrostock.models import Alert, AlertStatus, Remittance, RemittanceStatus


pytestmark = pytest.mark.django_db


@pytest.fixture
def populated(stocked_urea, depot_b, seed_remittance, paddock):
    stock.transfer(stocked_urea, 10, depot_b, reference='Reposición')
    stock.create_manual_alert(firm_id=1, entity=paddock, rule_id='inspection',
                              title='Revisar aguada')


class TestChangelists:

    @pytest.mark.parametrize('model', ['plot', 'input', 'movement', 'batch',
                                       'remittance', 'alert'])
    def test_changelist_renders(self, admin_client, populated, model):
        response = admin_client.get(reverse(f'admin:agrostock_{model}_changelist'))
        assert response.status_code == 200

    def test_remittance_detail_renders(self, admin_client, seed_remittance):
        url = reverse('admin:agrostock_remittance_change', args=[seed_remittance.pk])
        response = admin_client.get(url)
        assert response.status_code == 200
        assert 'Semilla X' in response.content.decode()

    def test_ledger_cannot_be_edited(self, admin_client, stocked_urea):
        movement = stocked_urea.movements.get()
        assert admin_client.get(reverse('admin:agrostock_movement_add')).status_code == 403
        url = reverse('admin:agrostock_movement_delete', args=[movement.pk])
        assert admin_client.post(url, {'post': 'yes'}).status_code == 403
        assert stocked_urea.movements.count() == 1


class TestActions:

    def test_cancel_remittances(self, admin_client, seed_remittance):
        response = admin_client.post(
            reverse('admin:agrostock_remittance_changelist'),
            {'action': 'cancel_remittances', '_selected_action': [seed_remittance.pk]},
            follow=True,
        )

        assert response.status_code == 200
        seed_remittance.refresh_from_db()
        assert seed_remittance.status == RemittanceStatus.CANCELLED
        assert seed_remittance.cancellation_reason == 'Cancelado desde el administrador'

    def test_cancel_skips_terminal_remittances(self, admin_client, seed_remittance):
        stock.cancel_remittance(seed_remittance, reason='Duplicado')

        response = admin_client.post(
            reverse('admin:agrostock_remittance_changelist'),
            {'action': 'cancel_remittances', '_selected_action': [seed_remittance.pk]},
            follow=True,
        )

        assert 'no se pudieron procesar' in response.content.decode()
        assert Remittance.objects.get().cancellation_reason == 'Duplicado'

    @pytest.mark.parametrize('action, status', [
        ('resolve_alerts', AlertStatus.COMPLETED),
        ('cancel_alerts', AlertStatus.CANCELLED),
    ])
    def test_alert_actions(self, admin_client, paddock, action, status):
        alert = stock.create_manual_alert(firm_id=1, entity=paddock, rule_id='inspection',
                                          title='Revisar aguada')

        admin_client.post(
            reverse('admin:agrostock_alert_changelist'),
            {'action': action, '_selected_action': [alert.pk]},
            follow=True,
        )

        alert.refresh_from_db()
        assert alert.status == status
        assert not Alert.objects.pending().exists()


class TestFormatQuantity:

    def test_with_unit(self):
        assert format_quantity(Decimal('12.500'), 'kg') == '12.50 kg'

    def test_without_unit(self):
        assert format_quantity(Decimal('3'), decimal_places=0) == '3'

    def test_none(self):
        assert format_quantity(None) == '-'
