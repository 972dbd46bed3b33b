"""
Stock movements — state-changing ledger operations (register, transfer, adjust).

All methods use transaction.atomic() with appropriate locking.
"""

import logging
import uuid
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation

from django.db import transaction

from agrostock.exceptions import InsufficientStock, StockError
from agrostock.models.enums import MovementType
from agrostock.models.input import Input
from agrostock.models.movement import Movement
from agrostock.models.plot import Plot
from agrostock.signals import movement_registered

logger = logging.getLogger('agrostock')

# Movement.quantity and Input._balance: 14 digits, 3 decimal places
QUANTITY_STEP = Decimal('0.001')
QUANTITY_LIMIT = Decimal('1e11')


@dataclass(frozen=True)
class TransferResult:
    """Both legs of a transfer plus the Input that received the stock."""

    source: Movement
    destination: Movement
    destination_input: Input

    @property
    def transfer_group(self):
        return self.source.transfer_group


class StockMovements:
    """State-changing stock movement methods."""

    @classmethod
    def register_movement(cls, input, type, quantity, depot=None,
                          destination_depot=None, reference='',
                          remittance=None, remittance_item=None, batch=None,
                          unit_cost=None, user=None, increase=False, **metadata):
        """
        Append one entry to the ledger.

        The sign is implied by type: entry adds, exit subtracts, adjustment
        subtracts (adds when increase=True), transfer moves stock from the
        input's depot to destination_depot (two rows).

        Raises:
            StockError('INVALID_QUANTITY'): quantity not a positive number
                with at most 3 decimal places
            StockError('INVALID_MOVEMENT_TYPE'): unknown type
            StockError('REFERENCE_REQUIRED'): empty reference
            StockError('DEPOT_MISMATCH'): depot is not the input's depot
            InsufficientStock: balance would go below zero

        Concurrency:
            - Runs under transaction.atomic()
            - Uses select_for_update() on Input
            - Verifies balance after lock

        Returns:
            The created Movement (the source leg for transfers).
        """
        qty = cls._to_quantity(quantity)
        if type not in MovementType.values:
            raise StockError('INVALID_MOVEMENT_TYPE', type=type)
        reference = cls._require_reference(reference)

        input = cls._resolve_input(input)
        if depot is not None and cls._pk(depot) != input.depot_id:
            raise StockError(
                'DEPOT_MISMATCH',
                input=input.name,
                depot=cls._pk(depot),
                expected=input.depot_id,
            )

        if type == MovementType.TRANSFER:
            result = cls._transfer(
                input, qty, destination_depot, reference,
                unit_cost=unit_cost, user=user, **metadata,
            )
            return result.source

        inbound = type == MovementType.ENTRY or (type == MovementType.ADJUSTMENT and increase)
        delta = qty if inbound else -qty

        if batch is not None and batch.input_id != input.pk:
            raise StockError('INVALID_ITEM', batch=batch.code, input=input.name)

        with transaction.atomic():
            locked = Input.objects.select_for_update().get(pk=input.pk)

            if delta < 0 and locked._balance + delta < 0:
                raise InsufficientStock(
                    input=locked.name,
                    depot=locked.depot_id,
                    available=locked._balance,
                    requested=qty,
                )

            movement = Movement.objects.create(
                input=locked,
                type=type,
                quantity=delta,
                depot_id=locked.depot_id,
                reference=reference,
                remittance=remittance,
                remittance_item=remittance_item,
                batch=batch,
                unit_cost=unit_cost,
                user=user,
                metadata=metadata,
            )
            logger.info(
                "stock.movement",
                extra={
                    "input_id": locked.pk,
                    "type": type,
                    "qty": str(delta),
                    "reference": reference,
                    "movement_id": movement.pk,
                },
            )
            cls._announce(movement)
            return movement

    @classmethod
    def transfer(cls, input, quantity, destination_depot, reference,
                 unit_cost=None, user=None, **metadata) -> TransferResult:
        """
        Move stock between two depots of the same firm.

        Both legs are created in one transaction or none is. The destination
        Input (same name/unit/category) is created when missing.

        Raises:
            StockError('DESTINATION_REQUIRED'): no destination
            StockError('INVALID_DEPOT'): destination is not a depot
            StockError('INVALID_TRANSFER'): same depot or another firm
            InsufficientStock: source balance would go below zero
        """
        qty = cls._to_quantity(quantity)
        reference = cls._require_reference(reference)
        return cls._transfer(
            cls._resolve_input(input), qty, destination_depot, reference,
            unit_cost=unit_cost, user=user, **metadata,
        )

    @classmethod
    def adjust_to(cls, input, counted_quantity, reason, user=None):
        """
        Physical count reconciliation.

        Calculates delta automatically: counted_quantity - input.balance

        Raises:
            StockError('REASON_REQUIRED'): If reason is empty
            StockError('INVALID_QUANTITY'): If counted_quantity is negative

        Returns:
            The adjustment Movement, or None when the count matches.
        """
        if not (reason or '').strip():
            raise StockError('REASON_REQUIRED')
        counted = cls._to_decimal(counted_quantity)
        if counted < 0:
            raise StockError('INVALID_QUANTITY', requested=counted_quantity)

        input = cls._resolve_input(input)

        with transaction.atomic():
            locked = Input.objects.select_for_update().get(pk=input.pk)
            delta = counted - locked._balance

            if delta == 0:
                return None

            movement = Movement.objects.create(
                input=locked,
                type=MovementType.ADJUSTMENT,
                quantity=delta,
                depot_id=locked.depot_id,
                reference=f"Ajuste por conteo: {reason.strip()}",
                user=user,
                metadata={'counted': str(counted), 'previous': str(locked._balance)},
            )
            logger.info(
                "stock.adjust",
                extra={
                    "input_id": locked.pk,
                    "delta": str(delta),
                    "reason": reason,
                },
            )
            cls._announce(movement)
            return movement

    @classmethod
    def recalculate(cls, input) -> Decimal:
        """Rebuild the balance cache of one input from its movements."""
        return cls._resolve_input(input).recalculate()

    # ══════════════════════════════════════════════════════════════
    # INTERNAL
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _transfer(cls, input, qty, destination_depot, reference,
                  unit_cost=None, user=None, **metadata) -> TransferResult:
        if destination_depot is None:
            raise StockError('DESTINATION_REQUIRED', input=input.name)

        destination = cls._resolve_plot(destination_depot)
        source = input.depot
        if not destination.is_depot:
            raise StockError('INVALID_DEPOT', depot=destination.code)
        if destination.pk == source.pk:
            raise StockError('INVALID_TRANSFER', reason='same_depot', depot=source.code)
        if destination.firm_id != source.firm_id:
            raise StockError(
                'INVALID_TRANSFER',
                reason='different_firm',
                source=source.code,
                destination=destination.code,
            )

        with transaction.atomic():
            dest_input, created = Input.objects.get_or_create(
                depot=destination,
                name=input.name,
                unit=input.unit,
                category=input.category,
                defaults={
                    'description': input.description,
                    'min_stock': input.min_stock,
                    'cost_per_unit': input.cost_per_unit,
                    'expiration_date': input.expiration_date,
                },
            )

            # Lock both rows in pk order
            locked = {
                row.pk: row
                for row in Input.objects.select_for_update()
                .filter(pk__in=[input.pk, dest_input.pk])
                .order_by('pk')
            }
            src = locked[input.pk]
            dst = locked[dest_input.pk]

            if src._balance < qty:
                raise InsufficientStock(
                    input=src.name,
                    depot=source.pk,
                    available=src._balance,
                    requested=qty,
                )

            group = uuid.uuid4()
            out_leg = Movement.objects.create(
                input=src,
                type=MovementType.TRANSFER,
                quantity=-qty,
                depot=source,
                destination_depot=destination,
                reference=reference,
                unit_cost=unit_cost,
                transfer_group=group,
                user=user,
                metadata=metadata,
            )
            in_leg = Movement.objects.create(
                input=dst,
                type=MovementType.TRANSFER,
                quantity=qty,
                depot=source,
                destination_depot=destination,
                reference=reference,
                unit_cost=unit_cost,
                transfer_group=group,
                user=user,
                metadata=metadata,
            )
            logger.info(
                "stock.transfer",
                extra={
                    "input_id": src.pk,
                    "destination_input_id": dst.pk,
                    "qty": str(qty),
                    "transfer_group": str(group),
                    "destination_created": created,
                },
            )
            cls._announce(out_leg)
            cls._announce(in_leg)
            dst.refresh_from_db()
            return TransferResult(source=out_leg, destination=in_leg, destination_input=dst)

    @staticmethod
    def _announce(movement):
        transaction.on_commit(
            lambda: movement_registered.send(sender=Movement, movement=movement)
        )

    @staticmethod
    def _to_decimal(value) -> Decimal:
        if isinstance(value, bool):
            raise StockError('INVALID_QUANTITY', requested=value)
        try:
            result = value if isinstance(value, Decimal) else Decimal(str(value))
        except (InvalidOperation, TypeError, ValueError):
            raise StockError('INVALID_QUANTITY', requested=value)
        if not result.is_finite() or abs(result) >= QUANTITY_LIMIT:
            raise StockError('INVALID_QUANTITY', requested=value)
        if result != result.quantize(QUANTITY_STEP):
            raise StockError('INVALID_QUANTITY', requested=value)
        return result

    @classmethod
    def _to_quantity(cls, value) -> Decimal:
        result = cls._to_decimal(value)
        if result <= 0:
            raise StockError('INVALID_QUANTITY', requested=value)
        return result

    @staticmethod
    def _require_reference(reference) -> str:
        reference = (reference or '').strip()
        if not reference:
            raise StockError('REFERENCE_REQUIRED')
        return reference

    @staticmethod
    def _pk(obj):
        return getattr(obj, 'pk', obj)

    @classmethod
    def _resolve_input(cls, input) -> Input:
        if isinstance(input, Input):
            return input
        return Input.objects.select_related('depot').get(pk=input)

    @classmethod
    def _resolve_plot(cls, plot) -> Plot:
        if isinstance(plot, Plot):
            return plot
        return Plot.objects.get(pk=plot)
