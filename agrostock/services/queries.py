"""
Stock queries — read-only operations.

All methods are classmethod on Stock and use no locking.
"""

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal

from django.db.models import Sum
from django.db.models.functions import Coalesce

from agrostock.models.enums import MovementType
from agrostock.models.input import Input
from agrostock.models.movement import Movement


@dataclass(frozen=True)
class Availability:
    """Answer to "can I take this much out?"."""

    available: bool
    current: Decimal
    shortfall: Decimal


@dataclass(frozen=True)
class KardexEntry:
    """One line of an input's kardex."""

    movement_id: int
    timestamp: datetime
    type: str
    quantity: Decimal
    balance: Decimal
    reference: str


@dataclass(frozen=True)
class BalanceDrift:
    """Input whose cached balance disagrees with its ledger."""

    input_id: int
    name: str
    cached: Decimal
    ledger: Decimal

    @property
    def difference(self) -> Decimal:
        return self.ledger - self.cached


@dataclass(frozen=True)
class InputTotal:
    """Per-input quantity and valuation over a period."""

    input_id: int
    name: str
    unit: str
    quantity: Decimal
    value: Decimal


class StockQueries:
    """Read-only stock query methods."""

    @classmethod
    def current_stock(cls, input) -> Decimal:
        """
        Current balance of an input.

        O(1) read of the cache maintained by Movement.save().
        """
        if isinstance(input, Input):
            input.refresh_from_db(fields=['_balance'])
            return input.balance
        return Input.objects.values_list('_balance', flat=True).get(pk=input)

    @classmethod
    def ledger_balance(cls, input) -> Decimal:
        """Signed sum of the input's movements (the source of truth)."""
        return Movement.objects.filter(input=input).aggregate(
            t=Coalesce(Sum('quantity'), Decimal('0'))
        )['t']

    @classmethod
    def check_availability(cls, input, quantity) -> Availability:
        """
        Whether `quantity` can be taken out of `input` right now.

        Advisory only: register_movement() re-checks under lock.
        """
        requested = Decimal(str(quantity))
        current = cls.current_stock(input)
        shortfall = max(requested - current, Decimal('0'))
        return Availability(
            available=shortfall == 0,
            current=current,
            shortfall=shortfall,
        )

    @classmethod
    def kardex(cls, input, since: date | None = None,
               until: date | None = None) -> list[KardexEntry]:
        """
        Chronological movements of an input with running balance.

        The running balance starts from everything recorded before `since`,
        so the last entry always matches the balance at `until`.
        """
        movements = Movement.objects.filter(input=input).order_by('timestamp', 'pk')

        running = Decimal('0')
        if since is not None:
            running = movements.filter(timestamp__date__lt=since).aggregate(
                t=Coalesce(Sum('quantity'), Decimal('0'))
            )['t']

        entries = []
        for movement in movements.between(since, until):
            running += movement.quantity
            entries.append(KardexEntry(
                movement_id=movement.pk,
                timestamp=movement.timestamp,
                type=movement.type,
                quantity=movement.quantity,
                balance=running,
                reference=movement.reference,
            ))
        return entries

    @classmethod
    def list_movements(cls, firm_id: int | None = None, input=None, depot=None,
                       type: str | None = None, since: date | None = None,
                       until: date | None = None):
        """
        List movements with filters.

        Args:
            firm_id: Filter by firm (through the depot)
            input: Filter by input
            depot: Filter by source depot
            type: Filter by MovementType
            since, until: Inclusive date range

        Returns:
            QuerySet of Movement, newest first
        """
        qs = Movement.objects.select_related('input', 'depot', 'destination_depot')

        if firm_id is not None:
            qs = qs.for_firm(firm_id)
        if input is not None:
            qs = qs.filter(input=input)
        if depot is not None:
            qs = qs.filter(depot=depot)
        if type is not None:
            qs = qs.of_type(type)

        return qs.between(since, until).order_by('-timestamp', '-pk')

    @classmethod
    def consumption(cls, firm_id: int, since: date | None = None,
                    until: date | None = None) -> list[InputTotal]:
        """Per-input exits over a period, valued at movement or input cost."""
        return cls._totals(firm_id, MovementType.EXIT, since, until)

    @classmethod
    def entries(cls, firm_id: int, since: date | None = None,
                until: date | None = None) -> list[InputTotal]:
        """Per-input entries over a period, valued at movement or input cost."""
        return cls._totals(firm_id, MovementType.ENTRY, since, until)

    @classmethod
    def verify_balances(cls, firm_id: int | None = None) -> list[BalanceDrift]:
        """
        Audit every input's cached balance against its ledger.

        Read-only; use Input.recalculate() to repair.
        """
        inputs = Input.objects.annotate(
            ledger=Coalesce(Sum('movements__quantity'), Decimal('0')),
        ).order_by('pk')
        if firm_id is not None:
            inputs = inputs.for_firm(firm_id)

        return [
            BalanceDrift(
                input_id=row.pk,
                name=row.name,
                cached=row._balance,
                ledger=row.ledger,
            )
            for row in inputs
            if row.ledger != row._balance
        ]

    @classmethod
    def _totals(cls, firm_id, movement_type, since, until) -> list[InputTotal]:
        movements = (
            Movement.objects.for_firm(firm_id)
            .of_type(movement_type)
            .between(since, until)
            .select_related('input')
            .order_by('input__name', 'pk')
        )

        totals: dict[int, InputTotal] = {}
        for movement in movements:
            qty = abs(movement.quantity)
            cost = movement.unit_cost
            if cost is None:
                cost = movement.input.cost_per_unit or Decimal('0')
            previous = totals.get(movement.input_id)
            totals[movement.input_id] = InputTotal(
                input_id=movement.input_id,
                name=movement.input.name,
                unit=movement.input.unit,
                quantity=qty + (previous.quantity if previous else Decimal('0')),
                value=qty * cost + (previous.value if previous else Decimal('0')),
            )
        return list(totals.values())
