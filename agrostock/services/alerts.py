"""
Alert engine — evaluate rules against current state and manage alert lifecycle.

Usage:
    from agrostock import stock

    # Run periodically (cron, celery beat) or after data changes
    result = stock.evaluate_alerts(firm_id=1)
    result.created   # new pending alerts
    result.closed    # alerts whose condition cleared

Deduplication is enforced by the database: at most one pending alert per
(entity, rule). Evaluation is idempotent and safe to run concurrently.
"""

import logging
from dataclasses import dataclass, field
from datetime import date

from django.contrib.contenttypes.models import ContentType
from django.db import IntegrityError, transaction
from django.db.models import Count
from django.utils import timezone

from agrostock import rules as registry
from agrostock.exceptions import InvalidTransition, StockError
from agrostock.models.alert import Alert
from agrostock.models.enums import AlertOrigin, AlertPriority, AlertStatus
from agrostock.models.input import Input
from agrostock.models.plot import Plot
from agrostock.signals import alert_closed, alert_created

logger = logging.getLogger('agrostock')

SCOPES = ('all', 'inputs', 'plots')


@dataclass(frozen=True)
class EvaluationResult:
    created: list = field(default_factory=list)
    closed: list = field(default_factory=list)


class AlertEngine:
    """Alert rule evaluation and lifecycle methods."""

    @classmethod
    def evaluate(cls, firm_id: int, scope: str = 'all', premise_id: int | None = None,
                 rules: list[str] | None = None, today: date | None = None) -> EvaluationResult:
        """
        Run enabled rules over the firm's entities.

        For every (entity, rule):
            True  + no pending alert → create one
            True  + pending alert    → nothing
            False + pending alert    → complete it
            None                     → rule does not apply, nothing

        Args:
            firm_id: Firm whose inputs and plots are evaluated
            scope: 'all', 'inputs' or 'plots'
            premise_id: Restrict to one premise
            rules: Restrict to these rule ids (must be registered)
            today: Reference date (None = today)

        Raises:
            StockError('INVALID_SCOPE'): unknown scope
            StockError('UNKNOWN_RULE'): unknown rule id in `rules`
        """
        if scope not in SCOPES:
            raise StockError('INVALID_SCOPE', scope=scope)
        today = today or timezone.localdate()

        selected = registry.enabled_rules()
        if rules is not None:
            wanted = {registry.get_rule(rule_id).id for rule_id in rules}
            selected = [r for r in selected if r.id in wanted]

        created, closed = [], []

        if scope in ('all', 'inputs'):
            inputs = Input.objects.for_firm(firm_id).select_related('depot')
            if premise_id is not None:
                inputs = inputs.filter(depot__premise_id=premise_id)
            cls._evaluate_entities(
                firm_id, Input, list(inputs),
                [r for r in selected if r.entity == registry.INPUT],
                today, created, closed,
            )

        if scope in ('all', 'plots'):
            plots = Plot.objects.filter(firm_id=firm_id)
            if premise_id is not None:
                plots = plots.filter(premise_id=premise_id)
            cls._evaluate_entities(
                firm_id, Plot, list(plots),
                [r for r in selected if r.entity == registry.PLOT],
                today, created, closed,
            )

        logger.info(
            "alerts.evaluate",
            extra={
                "firm_id": firm_id,
                "scope": scope,
                "created_count": len(created),
                "closed_count": len(closed),
            },
        )
        return EvaluationResult(created=created, closed=closed)

    @classmethod
    def resolve(cls, alert) -> Alert:
        """Mark a pending alert as completed."""
        return cls._close(alert, AlertStatus.COMPLETED)

    @classmethod
    def cancel(cls, alert) -> Alert:
        """Dismiss a pending alert. A later true evaluation raises a new one."""
        return cls._close(alert, AlertStatus.CANCELLED)

    @classmethod
    def create_manual_alert(cls, firm_id: int, entity, rule_id: str, title: str,
                            description: str = '', priority: str = AlertPriority.MEDIUM,
                            metadata: dict | None = None) -> Alert:
        """
        Raise an alert from outside the rule engine.

        If the entity already has a pending alert for rule_id, that alert
        is returned unchanged.
        """
        title = (title or '').strip()
        if not title:
            raise StockError('TITLE_REQUIRED', rule_id=rule_id)

        ct = ContentType.objects.get_for_model(entity)
        alert = cls._open(
            firm_id, ct, entity.pk, rule_id, priority, AlertOrigin.MANUAL,
            title, description, metadata or {},
        )
        if alert is None:
            return Alert.objects.pending().get(
                content_type=ct, object_id=entity.pk, rule_id=rule_id,
            )
        return alert

    @classmethod
    def active_alerts(cls, firm_id: int, rule_id: str | None = None,
                      priority: str | None = None):
        """Pending alerts of a firm, newest first."""
        qs = Alert.objects.for_firm(firm_id).pending()
        if rule_id is not None:
            qs = qs.filter(rule_id=rule_id)
        if priority is not None:
            qs = qs.filter(priority=priority)
        return qs.order_by('-created_at', '-pk')

    @classmethod
    def alert_stats(cls, firm_id: int) -> dict:
        """
        Alert totals of a firm.

        Returns:
            {'total', 'pending', 'completed', 'cancelled',
             'by_rule': {rule_id: pending}, 'by_priority': {priority: pending}}
        """
        alerts = Alert.objects.for_firm(firm_id)
        stats = {status: 0 for status in AlertStatus.values}
        for row in alerts.values('status').annotate(n=Count('pk')).order_by():
            stats[row['status']] = row['n']
        stats['total'] = sum(stats.values())

        pending = alerts.pending()
        stats['by_rule'] = {
            row['rule_id']: row['n']
            for row in pending.values('rule_id').annotate(n=Count('pk')).order_by('rule_id')
        }
        stats['by_priority'] = {priority: 0 for priority in AlertPriority.values}
        for row in pending.values('priority').annotate(n=Count('pk')).order_by():
            stats['by_priority'][row['priority']] = row['n']
        return stats

    # ══════════════════════════════════════════════════════════════
    # INTERNAL
    # ══════════════════════════════════════════════════════════════

    @classmethod
    def _evaluate_entities(cls, firm_id, model, entities, rules, today, created, closed):
        if not entities or not rules:
            return

        ct = ContentType.objects.get_for_model(model)
        pending = {
            (alert.object_id, alert.rule_id): alert
            for alert in Alert.objects.pending().filter(
                content_type=ct,
                object_id__in=[e.pk for e in entities],
                rule_id__in=[r.id for r in rules],
            )
        }
        params = {r.id: r.params(today) for r in rules}

        for entity in entities:
            for rule in rules:
                outcome = rule.predicate(entity, params[rule.id])
                if outcome is None:
                    continue

                existing = pending.get((entity.pk, rule.id))
                if outcome and existing is None:
                    message = rule.render(entity, params[rule.id])
                    alert = cls._open(
                        firm_id, ct, entity.pk, rule.id, rule.priority,
                        AlertOrigin.AUTOMATIC, message.title, message.description,
                        message.metadata,
                    )
                    if alert is not None:
                        created.append(alert)
                elif not outcome and existing is not None:
                    try:
                        closed.append(cls._close(existing, AlertStatus.COMPLETED))
                    except InvalidTransition:
                        # Closed by a user or another pass since it was read
                        logger.info(
                            "alerts.already_closed",
                            extra={"alert_id": existing.pk, "rule_id": rule.id},
                        )

    @classmethod
    def _open(cls, firm_id, ct, object_id, rule_id, priority, origin,
              title, description, metadata):
        """Insert a pending alert; None when one already exists."""
        try:
            with transaction.atomic():
                alert = Alert.objects.create(
                    firm_id=firm_id,
                    content_type=ct,
                    object_id=object_id,
                    rule_id=rule_id,
                    priority=priority,
                    origin=origin,
                    title=title,
                    description=description,
                    metadata=metadata,
                )
        except IntegrityError:
            # Another pass created it first
            logger.info(
                "alerts.duplicate",
                extra={"rule_id": rule_id, "object_id": object_id},
            )
            return None

        logger.info(
            "alerts.created",
            extra={
                "alert_id": alert.pk,
                "firm_id": firm_id,
                "rule_id": rule_id,
                "object_id": object_id,
                "origin": origin,
            },
        )
        transaction.on_commit(lambda: alert_created.send(sender=Alert, alert=alert))
        return alert

    @classmethod
    def _close(cls, alert, status) -> Alert:
        alert_id = getattr(alert, 'pk', alert)
        with transaction.atomic():
            locked = Alert.objects.select_for_update().get(pk=alert_id)
            if not locked.is_pending:
                raise InvalidTransition(alert=locked.pk, status=locked.status)
            locked.status = status
            locked.resolved_at = timezone.now()
            locked.save(update_fields=['status', 'resolved_at'])

        logger.info(
            "alerts.closed",
            extra={"alert_id": locked.pk, "rule_id": locked.rule_id, "status": status},
        )
        transaction.on_commit(lambda: alert_closed.send(sender=Alert, alert=locked))
        if isinstance(alert, Alert):
            alert.status = locked.status
            alert.resolved_at = locked.resolved_at
        return locked
