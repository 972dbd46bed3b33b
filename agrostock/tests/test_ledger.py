"""
Tests for the stock ledger: register_movement, transfer, adjust_to, recalculate.
"""

from decimal import Decimal
from unittest import mock

import pytest

from agrostock import stock, InsufficientStock, StockError
from agrostock.models import Input, Movement, MovementType


pytestmark = pytest.mark.django_db


def assert_balances_match_ledger():
    for input in Input.objects.all():
        assert input.balance == stock.ledger_balance(input), input.name


class TestRegisterMovement:
    """Tests for stock.register_movement()."""

    def test_entry_increases_balance(self, urea):
        movement = stock.register_movement(urea, 'entry', Decimal('100'), reference='Compra')

        urea.refresh_from_db()
        assert urea.balance == Decimal('100')
        assert movement.quantity == Decimal('100')
        assert movement.depot_id == urea.depot_id

    def test_exit_decreases_balance(self, stocked_urea):
        movement = stock.register_movement(
            stocked_urea, MovementType.EXIT, Decimal('30'), reference='Aplicación lote 7',
        )

        stocked_urea.refresh_from_db()
        assert stocked_urea.balance == Decimal('70')
        assert movement.quantity == Decimal('-30')

    def test_exit_above_balance_fails(self, stocked_urea):
        """Urea at 100 kg: a 150 kg exit fails and the balance stays at 100."""
        with pytest.raises(InsufficientStock) as exc:
            stock.register_movement(stocked_urea, 'exit', Decimal('150'), reference='Aplicación')

        assert exc.value.code == 'INSUFFICIENT_STOCK'
        assert exc.value.available == Decimal('100')
        assert exc.value.requested == Decimal('150')
        assert stock.current_stock(stocked_urea) == Decimal('100')
        assert stocked_urea.movements.count() == 1

    def test_exit_of_whole_balance_allowed(self, stocked_urea):
        stock.register_movement(stocked_urea, 'exit', 100, reference='Aplicación total')
        assert stock.current_stock(stocked_urea) == Decimal('0')

    def test_adjustment_decreases_by_default(self, stocked_urea):
        stock.register_movement(stocked_urea, 'adjustment', 5, reference='Bolsa rota')
        assert stock.current_stock(stocked_urea) == Decimal('95')

    def test_adjustment_increase(self, stocked_urea):
        stock.register_movement(
            stocked_urea, 'adjustment', 5, reference='Sobrante de conteo', increase=True,
        )
        assert stock.current_stock(stocked_urea) == Decimal('105')

    def test_adjustment_cannot_go_negative(self, stocked_urea):
        with pytest.raises(InsufficientStock):
            stock.register_movement(stocked_urea, 'adjustment', 101, reference='Pérdida')
        assert stocked_urea.movements.count() == 1

    @pytest.mark.parametrize('quantity', [0, -5, 'abc', None, float('nan'), float('inf')])
    def test_invalid_quantity(self, urea, quantity):
        with pytest.raises(StockError) as exc:
            stock.register_movement(urea, 'entry', quantity, reference='Compra')
        assert exc.value.code == 'INVALID_QUANTITY'

    @pytest.mark.parametrize('quantity', [Decimal('0.0004'), '2.0005', Decimal('1e11'), 10 ** 12])
    def test_quantity_must_fit_ledger_precision(self, urea, quantity):
        with pytest.raises(StockError) as exc:
            stock.register_movement(urea, 'entry', quantity, reference='Compra')
        assert exc.value.code == 'INVALID_QUANTITY'
        assert not urea.movements.exists()

    def test_fractional_quantities_keep_cache_in_step(self, urea):
        stock.register_movement(urea, 'entry', Decimal('1.5000'), reference='Compra')
        stock.register_movement(urea, 'entry', '0.001', reference='Compra')
        stock.register_movement(urea, 'exit', 0.25, reference='Aplicación')

        assert stock.current_stock(urea) == Decimal('1.251')
        assert_balances_match_ledger()

    def test_reference_required(self, urea):
        with pytest.raises(StockError) as exc:
            stock.register_movement(urea, 'entry', 10, reference='   ')
        assert exc.value.code == 'REFERENCE_REQUIRED'

    def test_unknown_type(self, urea):
        with pytest.raises(StockError) as exc:
            stock.register_movement(urea, 'gift', 10, reference='Regalo')
        assert exc.value.code == 'INVALID_MOVEMENT_TYPE'

    def test_depot_must_match_input(self, urea, depot_b):
        with pytest.raises(StockError) as exc:
            stock.register_movement(urea, 'entry', 10, depot=depot_b, reference='Compra')
        assert exc.value.code == 'DEPOT_MISMATCH'

    def test_accepts_primary_keys(self, urea, depot_a):
        stock.register_movement(urea.pk, 'entry', '12.5', depot=depot_a.pk, reference='Compra')
        assert stock.current_stock(urea.pk) == Decimal('12.5')

    def test_metadata_and_user_recorded(self, urea, user):
        movement = stock.register_movement(
            urea, 'entry', 10, reference='Compra', user=user, unit_cost=Decimal('0.75'),
            invoice='A-0001-1234',
        )
        assert movement.user == user
        assert movement.metadata == {'invoice': 'A-0001-1234'}
        assert movement.valuation == Decimal('7.5')

    def test_balance_invariant_after_sequence(self, urea):
        stock.register_movement(urea, 'entry', 80, reference='Compra 1')
        stock.register_movement(urea, 'exit', 25, reference='Aplicación 1')
        stock.register_movement(urea, 'adjustment', 3, reference='Merma')
        stock.register_movement(urea, 'entry', 10, reference='Compra 2')
        with pytest.raises(InsufficientStock):
            stock.register_movement(urea, 'exit', 1000, reference='Aplicación 2')

        assert stock.current_stock(urea) == Decimal('62')
        assert_balances_match_ledger()


class TestMovementImmutability:
    """Movements can never be changed or removed."""

    def test_save_existing_raises(self, stocked_urea):
        movement = stocked_urea.movements.get()
        movement.reference = 'Otra cosa'
        with pytest.raises(ValueError):
            movement.save()

    def test_delete_raises(self, stocked_urea):
        movement = stocked_urea.movements.get()
        with pytest.raises(ValueError):
            movement.delete()
        assert stock.current_stock(stocked_urea) == Decimal('100')

    def test_empty_reference_rejected_by_model(self, urea):
        with pytest.raises(ValueError):
            Movement.objects.create(
                input=urea, type='entry', quantity=1, depot=urea.depot, reference='',
            )


class TestTransfer:
    """Tests for stock.transfer() and register_movement(type='transfer')."""

    def test_transfer_creates_destination_input(self, stocked_urea, depot_b):
        """10 kg to a depot without urea: new input created there and credited."""
        result = stock.transfer(stocked_urea, 10, depot_b, reference='Reposición galpón 2')

        destination = result.destination_input
        assert destination.depot_id == depot_b.pk
        assert (destination.name, destination.unit, destination.category) == (
            'Urea', 'kg', 'fertilizante',
        )
        assert destination.cost_per_unit == Decimal('0.80')
        assert stock.current_stock(destination) == Decimal('10')
        assert stock.current_stock(stocked_urea) == Decimal('90')

        assert result.source.quantity == Decimal('-10')
        assert result.destination.quantity == Decimal('10')
        assert result.source.transfer_group == result.destination.transfer_group
        assert result.source.destination_depot_id == depot_b.pk
        assert_balances_match_ledger()

    def test_transfer_reuses_existing_destination_input(self, stocked_urea, depot_b):
        existing = Input.objects.create(depot=depot_b, name='Urea', unit='kg', category='fertilizante')

        result = stock.transfer(stocked_urea, 40, depot_b, reference='Reposición')

        assert result.destination_input.pk == existing.pk
        assert Input.objects.filter(name='Urea').count() == 2

    def test_register_movement_transfer_returns_source_leg(self, stocked_urea, depot_b):
        movement = stock.register_movement(
            stocked_urea, 'transfer', 15, destination_depot=depot_b, reference='Traslado',
        )
        assert movement.quantity == Decimal('-15')
        assert movement.input_id == stocked_urea.pk
        assert Movement.objects.filter(transfer_group=movement.transfer_group).count() == 2

    def test_transfer_insufficient_stock_creates_nothing(self, stocked_urea, depot_b):
        with pytest.raises(InsufficientStock):
            stock.transfer(stocked_urea, 500, depot_b, reference='Traslado')

        assert Movement.objects.filter(type=MovementType.TRANSFER).count() == 0
        assert not Input.objects.filter(depot=depot_b).exists()
        assert stock.current_stock(stocked_urea) == Decimal('100')

    def test_transfer_is_all_or_nothing(self, stocked_urea, depot_b):
        """A failure writing the credit leg rolls back the debit leg too."""
        real_create = Movement.objects.create
        calls = []

        def fail_on_second(**kwargs):
            calls.append(kwargs)
            if len(calls) == 2:
                raise RuntimeError('store failure')
            return real_create(**kwargs)

        with mock.patch.object(Movement.objects, 'create', side_effect=fail_on_second):
            with pytest.raises(RuntimeError):
                stock.transfer(stocked_urea, 10, depot_b, reference='Traslado')

        assert stock.current_stock(stocked_urea) == Decimal('100')
        assert Movement.objects.count() == 1
        assert not Input.objects.filter(depot=depot_b).exists()

    def test_destination_required(self, stocked_urea):
        with pytest.raises(StockError) as exc:
            stock.register_movement(stocked_urea, 'transfer', 5, reference='Traslado')
        assert exc.value.code == 'DESTINATION_REQUIRED'

    def test_same_depot_rejected(self, stocked_urea, depot_a):
        with pytest.raises(StockError) as exc:
            stock.transfer(stocked_urea, 5, depot_a, reference='Traslado')
        assert exc.value.code == 'INVALID_TRANSFER'

    def test_other_firm_rejected(self, stocked_urea, foreign_depot):
        with pytest.raises(StockError) as exc:
            stock.transfer(stocked_urea, 5, foreign_depot, reference='Traslado')
        assert exc.value.code == 'INVALID_TRANSFER'

    def test_destination_must_be_depot(self, stocked_urea, paddock):
        with pytest.raises(StockError) as exc:
            stock.transfer(stocked_urea, 5, paddock, reference='Traslado')
        assert exc.value.code == 'INVALID_DEPOT'


class TestAdjustTo:
    """Tests for stock.adjust_to() (physical count)."""

    def test_count_below_balance(self, stocked_urea):
        movement = stock.adjust_to(stocked_urea, Decimal('92'), reason='Conteo mensual')

        assert movement.type == MovementType.ADJUSTMENT
        assert movement.quantity == Decimal('-8')
        assert stock.current_stock(stocked_urea) == Decimal('92')

    def test_count_above_balance(self, stocked_urea):
        movement = stock.adjust_to(stocked_urea, 104, reason='Conteo mensual')
        assert movement.quantity == Decimal('4')

    def test_count_matches(self, stocked_urea):
        assert stock.adjust_to(stocked_urea, 100, reason='Conteo mensual') is None
        assert stocked_urea.movements.count() == 1

    def test_reason_required(self, stocked_urea):
        with pytest.raises(StockError) as exc:
            stock.adjust_to(stocked_urea, 90, reason='')
        assert exc.value.code == 'REASON_REQUIRED'

    def test_negative_count_rejected(self, stocked_urea):
        with pytest.raises(StockError) as exc:
            stock.adjust_to(stocked_urea, -1, reason='Conteo')
        assert exc.value.code == 'INVALID_QUANTITY'

    def test_count_beyond_precision_rejected(self, stocked_urea):
        with pytest.raises(StockError) as exc:
            stock.adjust_to(stocked_urea, '99.9995', reason='Conteo')
        assert exc.value.code == 'INVALID_QUANTITY'
        assert stocked_urea.movements.count() == 1


class TestRecalculate:
    """The balance is a cache that can be rebuilt from the ledger."""

    def test_recalculate_fixes_drift(self, stocked_urea, caplog):
        Input.objects.filter(pk=stocked_urea.pk).update(_balance=Decimal('7'))
        stocked_urea.refresh_from_db()

        with caplog.at_level('WARNING', logger='agrostock'):
            total = stock.recalculate(stocked_urea)

        assert total == Decimal('100')
        stocked_urea.refresh_from_db()
        assert stocked_urea.balance == Decimal('100')
        assert 'recalculated' in caplog.text

    def test_recalculate_without_drift_is_noop(self, stocked_urea, caplog):
        with caplog.at_level('WARNING', logger='agrostock'):
            assert stocked_urea.recalculate() == Decimal('100')
        assert caplog.text == ''
