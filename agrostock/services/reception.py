"""
Reception — remittance lifecycle and receipt reconciliation.

Receipts arrive as cumulative quantities per item. Each pass posts only the
newly received delta to the ledger, so repeating a payload is harmless.
Items without an Input keep their delta as pending_quantity until
link_input_to_item() resolves them.

    in_transit ──► partially_received ──► received
        │                  │
        └──────────────────┴──────────► cancelled
"""

import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import Decimal

from django.db import IntegrityError, transaction
from django.db.models import Count, F, Q
from django.utils import timezone

from agrostock.conf import agrostock_settings
from agrostock.exceptions import (
    ConcurrencyConflict,
    DuplicateDocument,
    InvalidTransition,
    StockError,
)
from agrostock.models.batch import Batch
from agrostock.models.enums import ItemCondition, MovementType, RemittanceStatus
from agrostock.models.input import Input
from agrostock.models.linkage import Linked
from agrostock.models.plot import Plot
from agrostock.models.remittance import Remittance, RemittanceItem
from agrostock.services.movements import StockMovements
from agrostock.signals import remittance_received

logger = logging.getLogger('agrostock')

ITEM_METADATA_FIELDS = ('batch_number', 'batch_expiry_date', 'condition', 'notes')


@dataclass(frozen=True)
class ReceiptResult:
    """
    Outcome of one receive() call.

    pending_input_creation lists the items that received quantity in this
    pass but have no Input yet; it is a result, not an error.
    """

    remittance: Remittance
    pending_input_creation: list = field(default_factory=list)
    movements: list = field(default_factory=list)


class Reception:
    """Remittance reconciliation methods."""

    @classmethod
    def create_remittance(cls, document_number, date, supplier_name, depot, items,
                          supplier_tax_id='', firm_id=None, purchase_order_ref='',
                          notes='') -> Remittance:
        """
        Register a delivery document with its items.

        Each item is a mapping with description, unit and quantity_ordered
        (optional: category, input, batch_number, batch_expiry_date, notes).

        Raises:
            StockError('INVALID_DOCUMENT'): missing document number or supplier
            StockError('INVALID_DEPOT'): depot is not a depot of the firm
            StockError('INVALID_ITEM'): no items, or an item is incomplete
            DuplicateDocument: an active remittance has the same identity
        """
        document_number = (document_number or '').strip()
        supplier_name = (supplier_name or '').strip()
        supplier_tax_id = (supplier_tax_id or '').strip()
        if not document_number or not supplier_name:
            raise StockError(
                'INVALID_DOCUMENT',
                document_number=document_number,
                supplier=supplier_name,
            )

        depot = depot if isinstance(depot, Plot) else Plot.objects.get(pk=depot)
        if not depot.is_depot:
            raise StockError('INVALID_DEPOT', depot=depot.code)
        if firm_id is None:
            firm_id = depot.firm_id
        elif firm_id != depot.firm_id:
            raise StockError('INVALID_DEPOT', depot=depot.code, firm_id=firm_id)

        if not items:
            raise StockError('INVALID_ITEM', reason='empty')
        cleaned = [cls._clean_item(raw, line, depot) for line, raw in enumerate(items, start=1)]

        identity = {
            'firm_id': firm_id,
            'document_number': document_number,
            'date': date,
            'supplier_tax_id': supplier_tax_id,
        }

        with transaction.atomic():
            cls._reject_duplicate(identity, supplier_name)
            try:
                with transaction.atomic():
                    remittance = Remittance.objects.create(
                        supplier_name=supplier_name,
                        depot=depot,
                        purchase_order_ref=purchase_order_ref,
                        notes=notes,
                        **identity,
                    )
            except IntegrityError:
                # Concurrent insert won the partial unique constraint
                raise DuplicateDocument(
                    document_number=document_number,
                    date=date,
                    supplier=supplier_name,
                )

            RemittanceItem.objects.bulk_create([
                RemittanceItem(remittance=remittance, **item) for item in cleaned
            ])

        logger.info(
            "reception.create",
            extra={
                "remittance_id": remittance.pk,
                "document_number": document_number,
                "items": len(cleaned),
            },
        )
        return remittance

    @classmethod
    def receive(cls, remittance, received_by, item_updates, user=None) -> ReceiptResult:
        """
        Apply cumulative received quantities to a remittance.

        Args:
            remittance: Remittance or pk
            received_by: Name of who received the goods
            item_updates: [{item_id, quantity_received, batch_number?,
                            batch_expiry_date?, condition?, notes?}]
            user: Optional user recorded on the Movements

        Raises:
            InvalidTransition: terminal remittance, or a cumulative quantity
                lower than what was already received
            DuplicateDocument: another active remittance has the same identity
            StockError('OVER_RECEIPT'): above the tolerance over ordered
            StockError('INVALID_ITEM'): unknown item or bad quantity
            ConcurrencyConflict: still conflicting after RECEIVE_RETRIES

        Concurrency:
            The previous cumulative value of each item and the remittance
            version are compared-and-set inside the transaction. A conflict
            rolls the whole pass back and retries it from fresh data.
        """
        remittance_id = getattr(remittance, 'pk', remittance)
        retries = agrostock_settings.RECEIVE_RETRIES
        attempt = 0

        while True:
            try:
                result = cls._receive_once(remittance_id, received_by, item_updates, user)
            except ConcurrencyConflict as exc:
                if attempt >= retries:
                    raise
                attempt += 1
                logger.warning(
                    "reception.conflict_retry",
                    extra={
                        "remittance_id": remittance_id,
                        "attempt": attempt,
                        "conflict": exc.as_dict(),
                    },
                )
                continue
            return result

    @classmethod
    def link_input_to_item(cls, item, input, user=None):
        """
        Resolve an item's Input and post its deferred quantity.

        Relinking the same Input is a no-op. Allowed on any remittance
        status: the pending quantity was physically received.

        Raises:
            StockError('ALREADY_LINKED'): item linked to another Input
            StockError('DEPOT_MISMATCH'): Input is not at the remittance depot

        Returns:
            The entry Movement for the pending quantity, or None.
        """
        item_id = getattr(item, 'pk', item)
        input_id = getattr(input, 'pk', input)

        with transaction.atomic():
            locked = (
                RemittanceItem.objects.select_for_update()
                .select_related('remittance')
                .get(pk=item_id)
            )
            linkage = locked.linkage
            if isinstance(linkage, Linked):
                if linkage.input_id == input_id:
                    return None
                raise StockError(
                    'ALREADY_LINKED',
                    item=locked.pk,
                    input=linkage.input_id,
                    requested=input_id,
                )

            target = Input.objects.get(pk=input_id)
            remittance = locked.remittance
            if target.depot_id != remittance.depot_id:
                raise StockError(
                    'DEPOT_MISMATCH',
                    input=target.name,
                    depot=target.depot_id,
                    expected=remittance.depot_id,
                )

            pending = locked.pending_quantity
            locked.input = target
            locked.pending_quantity = Decimal('0')
            locked.save(update_fields=['input', 'pending_quantity'])

            movement = None
            if pending > 0:
                movement = StockMovements.register_movement(
                    target,
                    MovementType.ENTRY,
                    pending,
                    depot=remittance.depot_id,
                    reference=cls._reference(remittance),
                    remittance=remittance,
                    remittance_item=locked,
                    batch=cls._batch_for(locked, target, remittance),
                    user=user,
                    deferred=True,
                )

            logger.info(
                "reception.link",
                extra={
                    "item_id": locked.pk,
                    "input_id": target.pk,
                    "posted": str(pending),
                },
            )
            if isinstance(item, RemittanceItem):
                item.input = target
                item.pending_quantity = Decimal('0')
            return movement

    @classmethod
    def create_input_for_item(cls, item, user=None, **overrides):
        """
        Create the Input an unlinked item is waiting for, then link it.

        The Input takes the item's description, unit, category and batch
        expiry at the remittance depot; `overrides` replace any of them
        (or set min_stock, cost_per_unit...). An existing Input with the
        same identity at that depot is reused.

        Returns:
            (Input, Movement | None)
        """
        if not isinstance(item, RemittanceItem):
            item = RemittanceItem.objects.select_related('remittance').get(pk=item)
        linkage = item.linkage
        if isinstance(linkage, Linked):
            raise StockError('ALREADY_LINKED', item=item.pk, input=linkage.input_id)

        values = {
            'name': item.description,
            'unit': item.unit,
            'category': item.category,
            'expiration_date': item.batch_expiry_date,
        }
        values.update(overrides)

        with transaction.atomic():
            input, created = Input.objects.get_or_create(
                depot_id=item.remittance.depot_id,
                name=values.pop('name'),
                unit=values.pop('unit'),
                category=values.pop('category'),
                defaults=values,
            )
            movement = cls.link_input_to_item(item, input, user=user)

        logger.info(
            "reception.create_input",
            extra={"item_id": item.pk, "input_id": input.pk, "input_created": created},
        )
        return input, movement

    @classmethod
    def cancel_remittance(cls, remittance, reason) -> Remittance:
        """
        Cancel a non-terminal remittance.

        Movements already posted stay in the ledger; reverse them with new
        movements if the goods go back.

        Raises:
            StockError('REASON_REQUIRED'): empty reason
            InvalidTransition: remittance already received or cancelled
        """
        reason = (reason or '').strip()
        if not reason:
            raise StockError('REASON_REQUIRED')

        remittance_id = getattr(remittance, 'pk', remittance)
        with transaction.atomic():
            locked = Remittance.objects.select_for_update().get(pk=remittance_id)
            if locked.is_terminal:
                raise InvalidTransition(
                    remittance=locked.document_number,
                    status=locked.status,
                )

            previous = locked.status
            locked.status = RemittanceStatus.CANCELLED
            locked.cancellation_reason = reason
            locked.cancelled_at = timezone.now()
            locked.version = F('version') + 1
            locked.save(update_fields=[
                'status', 'cancellation_reason', 'cancelled_at', 'version', 'updated_at',
            ])
            locked.refresh_from_db()

        logger.warning(
            "reception.cancel",
            extra={
                "remittance_id": locked.pk,
                "document_number": locked.document_number,
                "previous_status": previous,
                "reason": reason,
            },
        )
        return locked

    # ══════════════════════════════════════════════════════════════
    # QUERIES
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def items_needing_input(cls, firm_id: int):
        """Unlinked items holding received quantity, oldest document first."""
        return (
            RemittanceItem.objects.needing_input()
            .filter(remittance__firm_id=firm_id)
            .select_related('remittance')
            .order_by('remittance__date', 'remittance_id', 'line')
        )

    @classmethod
    def remittance_stats(cls, firm_id: int) -> dict[str, int]:
        """Remittance count per status, plus 'total'."""
        stats = {status: 0 for status in RemittanceStatus.values}
        rows = (
            Remittance.objects.for_firm(firm_id)
            .values('status')
            .annotate(n=Count('pk'))
            .order_by()
        )
        for row in rows:
            stats[row['status']] = row['n']
        stats['total'] = sum(stats.values())
        return stats

    @classmethod
    def stale_remittances(cls, firm_id: int, days: int | None = None,
                          today: date | None = None):
        """In-transit remittances whose document date is older than `days`."""
        if days is None:
            days = agrostock_settings.STALE_REMITTANCE_DAYS
        cutoff = (today or date.today()) - timedelta(days=days)
        return Remittance.objects.for_firm(firm_id).filter(
            status=RemittanceStatus.IN_TRANSIT,
            date__lt=cutoff,
        ).order_by('date')

    # ══════════════════════════════════════════════════════════════
    # INTERNAL
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _receive_once(cls, remittance_id, received_by, item_updates, user=None) -> ReceiptResult:
        updates = cls._clean_updates(item_updates)
        tolerance = agrostock_settings.RECEIPT_TOLERANCE

        with transaction.atomic():
            remittance = Remittance.objects.select_related('depot').get(pk=remittance_id)
            if remittance.is_terminal:
                raise InvalidTransition(
                    remittance=remittance.document_number,
                    status=remittance.status,
                )
            cls._reject_duplicate(
                {
                    'firm_id': remittance.firm_id,
                    'document_number': remittance.document_number,
                    'date': remittance.date,
                    'supplier_tax_id': remittance.supplier_tax_id,
                },
                remittance.supplier_name,
                exclude=remittance.pk,
            )

            version = remittance.version
            items = {
                item.pk: item
                for item in remittance.items.select_for_update().order_by('pk')
            }
            movements = []
            pending = []

            for update in updates:
                item = items.get(update['item_id'])
                if item is None:
                    raise StockError(
                        'INVALID_ITEM',
                        item=update['item_id'],
                        remittance=remittance.document_number,
                    )

                cumulative = update['quantity_received']
                previous = item.quantity_received
                delta = cumulative - previous
                if delta < 0:
                    raise InvalidTransition(
                        item=item.pk,
                        previous=previous,
                        cumulative=cumulative,
                        delta=delta,
                    )
                limit = item.quantity_ordered * (1 + tolerance)
                if cumulative > limit:
                    raise StockError(
                        'OVER_RECEIPT',
                        item=item.pk,
                        ordered=item.quantity_ordered,
                        requested=cumulative,
                        limit=limit,
                    )

                cls._apply_item_metadata(item, update)
                if delta == 0:
                    continue

                cls._swap_received(item, previous, cumulative)

                linkage = item.linkage
                if isinstance(linkage, Linked):
                    target = Input.objects.get(pk=linkage.input_id)
                    movements.append(StockMovements.register_movement(
                        target,
                        MovementType.ENTRY,
                        delta,
                        depot=remittance.depot_id,
                        reference=cls._reference(remittance),
                        remittance=remittance,
                        remittance_item=item,
                        batch=cls._batch_for(item, target, remittance),
                        user=user,
                        received_by=received_by,
                    ))
                else:
                    cls._defer(item, delta)
                    pending.append(item)

            received_any = bool(movements or pending)
            if received_any:
                cls._advance(remittance, version, items.values(), received_by)

        if received_any:
            transaction.on_commit(
                lambda: remittance_received.send(
                    sender=Remittance, remittance=remittance, pending=pending,
                )
            )
        logger.info(
            "reception.receive",
            extra={
                "remittance_id": remittance.pk,
                "status": remittance.status,
                "movements": len(movements),
                "pending": len(pending),
                "received_by": received_by,
            },
        )
        return ReceiptResult(
            remittance=remittance,
            pending_input_creation=pending,
            movements=movements,
        )

    @classmethod
    def _swap_received(cls, item, previous, cumulative):
        """Compare-and-set of the cumulative received quantity."""
        updated = RemittanceItem.objects.filter(
            pk=item.pk,
            quantity_received=previous,
        ).update(quantity_received=cumulative)
        if updated != 1:
            raise ConcurrencyConflict(item=item.pk, expected=previous)
        item.quantity_received = cumulative

    @classmethod
    def _defer(cls, item, delta):
        """Hold a delta on an item that is still unlinked."""
        updated = RemittanceItem.objects.filter(pk=item.pk, input__isnull=True).update(
            pending_quantity=F('pending_quantity') + delta,
        )
        if updated != 1:
            # Linked since it was read: the delta must become a movement
            raise ConcurrencyConflict(item=item.pk, reason='linked_during_receipt')
        item.refresh_from_db(fields=['pending_quantity'])

    @classmethod
    def _advance(cls, remittance, version, items, received_by):
        """Move the remittance forward after a pass that received something."""
        if all(item.quantity_received >= item.quantity_ordered for item in items):
            status = RemittanceStatus.RECEIVED
        else:
            status = RemittanceStatus.PARTIALLY_RECEIVED

        now = timezone.now()
        updated = Remittance.objects.filter(pk=remittance.pk, version=version).update(
            status=status,
            received_by=received_by or '',
            received_at=now,
            version=F('version') + 1,
            updated_at=now,
        )
        if updated != 1:
            raise ConcurrencyConflict(remittance=remittance.pk, expected_version=version)
        remittance.refresh_from_db()

    @classmethod
    def _apply_item_metadata(cls, item, update):
        changed = [
            name for name in ITEM_METADATA_FIELDS
            if name in update and getattr(item, name) != update[name]
        ]
        if not changed:
            return
        for name in changed:
            setattr(item, name, update[name])
        item.save(update_fields=changed)

    @classmethod
    def _batch_for(cls, item, input, remittance):
        """
        Batch for the item's lot number, created on first receipt.

        The earliest batch expiry becomes the input's expiration date.
        """
        if not item.batch_number:
            return None
        batch, created = Batch.objects.get_or_create(
            input=input,
            code=item.batch_number,
            defaults={
                'expiry_date': item.batch_expiry_date,
                'supplier': remittance.supplier_name,
            },
        )
        if batch.expiry_date is not None:
            Input.objects.filter(pk=input.pk).filter(
                Q(expiration_date__isnull=True) | Q(expiration_date__gt=batch.expiry_date)
            ).update(expiration_date=batch.expiry_date)
        return batch

    @classmethod
    def _reject_duplicate(cls, identity, supplier_name, exclude=None):
        qs = Remittance.objects.active().filter(**identity)
        if exclude is not None:
            qs = qs.exclude(pk=exclude)
        duplicate = qs.first()
        if duplicate is not None:
            raise DuplicateDocument(
                document_number=identity['document_number'],
                date=identity['date'],
                supplier=supplier_name,
                duplicate_id=duplicate.pk,
            )

    @staticmethod
    def _reference(remittance) -> str:
        return f"Recepción remito {remittance.document_number}"

    @classmethod
    def _clean_item(cls, raw, line, depot) -> dict:
        description = (raw.get('description') or '').strip()
        unit = (raw.get('unit') or '').strip()
        if not description or not unit:
            raise StockError('INVALID_ITEM', line=line, reason='description_and_unit_required')

        ordered = raw.get('quantity_ordered')
        try:
            ordered = StockMovements._to_quantity(ordered)
        except StockError:
            raise StockError('INVALID_ITEM', line=line, quantity_ordered=ordered)

        input = raw.get('input')
        if input is not None:
            input = input if isinstance(input, Input) else Input.objects.get(pk=input)
            if input.depot_id != depot.pk:
                raise StockError('INVALID_ITEM', line=line, reason='input_at_other_depot')

        return {
            'line': raw.get('line', line),
            'description': description,
            'unit': unit,
            'category': raw.get('category', ''),
            'quantity_ordered': ordered,
            'input': input,
            'batch_number': raw.get('batch_number', ''),
            'batch_expiry_date': raw.get('batch_expiry_date'),
            'condition': raw.get('condition', ItemCondition.GOOD),
            'notes': raw.get('notes', ''),
        }

    @classmethod
    def _clean_updates(cls, item_updates) -> list[dict]:
        cleaned = []
        seen = set()
        for raw in item_updates:
            item_id = raw.get('item_id')
            if item_id is None or item_id in seen:
                raise StockError('INVALID_ITEM', item=item_id, reason='missing_or_repeated')
            seen.add(item_id)

            quantity = raw.get('quantity_received')
            try:
                quantity = StockMovements._to_decimal(quantity)
            except StockError:
                raise StockError('INVALID_ITEM', item=item_id, quantity_received=quantity)
            if quantity < 0:
                raise StockError('INVALID_ITEM', item=item_id, quantity_received=quantity)

            update = {'item_id': item_id, 'quantity_received': quantity}
            for name in ITEM_METADATA_FIELDS:
                if name in raw:
                    update[name] = raw[name]
            cleaned.append(update)
        return cleaned
