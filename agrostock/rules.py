"""
Alert rules — declarative registry of monitoring conditions.

A rule is a value: which entity kind it watches, its priority, a predicate
and a message renderer. The predicate answers True (condition holds),
False (condition cleared) or None (rule does not apply to this entity).

Adding a rule:

    @rule(
        'input_overstock',
        name='Sobrestock',
        entity=INPUT,
        priority=AlertPriority.LOW,
        render=lambda input, params: Message(f"Sobrestock: {input.name}"),
        defaults={'OVERSTOCK_FACTOR': 3},
    )
    def input_overstock(input, params):
        if not input.min_stock:
            return None
        return input.balance > input.min_stock * params['OVERSTOCK_FACTOR']

Rule parameters are read from settings.AGROSTOCK when present, falling
back to the rule's defaults.
"""

from dataclasses import dataclass, field
from datetime import date
from typing import Callable

from django.db.models import Max, Q
from django.utils import timezone

from agrostock.conf import agrostock_settings
from agrostock.exceptions import StockError
from agrostock.models.enums import AlertPriority, LandUse

INPUT = 'input'
PLOT = 'plot'


@dataclass(frozen=True)
class Message:
    title: str
    description: str = ''
    metadata: dict = field(default_factory=dict)


@dataclass(frozen=True)
class AlertRule:
    """A registered monitoring condition."""

    id: str
    name: str
    entity: str
    priority: str
    predicate: Callable
    render: Callable
    defaults: dict = field(default_factory=dict)
    enabled: bool = True

    def params(self, today: date) -> dict:
        """Current parameters: settings override defaults."""
        values = {
            key: getattr(agrostock_settings, key, default)
            for key, default in self.defaults.items()
        }
        values['today'] = today
        return values


_registry: dict[str, AlertRule] = {}


def rule(id, name, entity, priority, render, defaults=None, enabled=True):
    """Register the decorated function as the predicate of a rule."""
    def decorator(predicate):
        _registry[id] = AlertRule(
            id=id,
            name=name,
            entity=entity,
            priority=priority,
            predicate=predicate,
            render=render,
            defaults=defaults or {},
            enabled=enabled,
        )
        return predicate
    return decorator


def get_rule(rule_id: str) -> AlertRule:
    try:
        return _registry[rule_id]
    except KeyError:
        raise StockError('UNKNOWN_RULE', rule_id=rule_id)


def all_rules() -> list[AlertRule]:
    return list(_registry.values())


def enabled_rules(entity: str | None = None) -> list[AlertRule]:
    """Rules that evaluate() runs, minus DISABLED_ALERT_RULES."""
    disabled = set(agrostock_settings.DISABLED_ALERT_RULES)
    return [
        r for r in _registry.values()
        if r.enabled and r.id not in disabled and (entity is None or r.entity == entity)
    ]


# ══════════════════════════════════════════════════════════════
# INPUT RULES
# ══════════════════════════════════════════════════════════════


def _days_to_expiry(input, today: date) -> int:
    return (input.expiration_date - today).days


def _expiring_message(input, params):
    days = _days_to_expiry(input, params['today'])
    return Message(
        title=f"Vence en {days} días: {input.name}",
        description=(
            f'El insumo "{input.name}" en {input.depot.name} vence el '
            f'{input.expiration_date:%d/%m/%Y}.'
        ),
        metadata={
            'input_id': input.pk,
            'expiration_date': input.expiration_date.isoformat(),
            'days_to_expiry': days,
        },
    )


@rule(
    'input_expiring',
    name='Insumo próximo a vencer',
    entity=INPUT,
    priority=AlertPriority.HIGH,
    render=_expiring_message,
    defaults={'EXPIRY_WARNING_DAYS': 30},
)
def input_expiring(input, params):
    if input.expiration_date is None:
        return None
    days = _days_to_expiry(input, params['today'])
    return 0 < days <= params['EXPIRY_WARNING_DAYS']


def _expired_message(input, params):
    return Message(
        title=f"VENCIDO: {input.name}",
        description=(
            f'El insumo "{input.name}" está vencido desde '
            f'{input.expiration_date:%d/%m/%Y}.'
        ),
        metadata={
            'input_id': input.pk,
            'expiration_date': input.expiration_date.isoformat(),
        },
    )


@rule(
    'input_expired',
    name='Insumo vencido',
    entity=INPUT,
    priority=AlertPriority.HIGH,
    render=_expired_message,
)
def input_expired(input, params):
    if input.expiration_date is None:
        return None
    return _days_to_expiry(input, params['today']) <= 0


def _low_stock_message(input, params):
    return Message(
        title=f"Stock bajo: {input.name}",
        description=(
            f"Quedan {input.balance} {input.unit} de {input.name} en "
            f"{input.depot.name} (mínimo {input.min_stock} {input.unit})."
        ),
        metadata={
            'input_id': input.pk,
            'balance': str(input.balance),
            'min_stock': str(input.min_stock),
            'unit': input.unit,
        },
    )


@rule(
    'input_low_stock',
    name='Stock mínimo alcanzado',
    entity=INPUT,
    priority=AlertPriority.MEDIUM,
    render=_low_stock_message,
)
def input_low_stock(input, params):
    if not input.min_stock:
        return None
    return input.balance <= input.min_stock


# ══════════════════════════════════════════════════════════════
# PLOT RULES
# ══════════════════════════════════════════════════════════════

GRAZED = (LandUse.LIVESTOCK, LandUse.MIXED)
VEGETATED = (LandUse.AGRICULTURAL, LandUse.LIVESTOCK, LandUse.MIXED)


def _pasture_message(plot, params):
    return Message(
        title=f"Pastura crítica: {plot.name}",
        description=(
            f"Altura {plot.pasture_height_cm} cm, por debajo del remanente "
            f"objetivo de {plot.target_remnant_cm} cm. Retirar la hacienda."
        ),
        metadata={
            'pasture_height_cm': str(plot.pasture_height_cm),
            'target_remnant_cm': str(plot.target_remnant_cm),
        },
    )


@rule(
    'pasture_critical',
    name='Pastura por debajo del remanente',
    entity=PLOT,
    priority=AlertPriority.HIGH,
    render=_pasture_message,
)
def pasture_critical(plot, params):
    if plot.pasture_height_cm is None or plot.target_remnant_cm is None:
        return None
    return plot.pasture_height_cm < plot.target_remnant_cm


def _stale_measurement_message(plot, params):
    if plot.pasture_measured_at is None:
        detail = "Nunca se midió la pastura."
    else:
        days = (params['today'] - plot.pasture_measured_at).days
        detail = f"Última medición hace {days} días."
    return Message(
        title=f"Medición de pastura pendiente: {plot.name}",
        description=detail,
        metadata={
            'last_measured': plot.pasture_measured_at.isoformat() if plot.pasture_measured_at else None,
        },
    )


@rule(
    'pasture_measurement_stale',
    name='Medición de pastura desactualizada',
    entity=PLOT,
    priority=AlertPriority.MEDIUM,
    render=_stale_measurement_message,
    defaults={'MEASUREMENT_STALE_DAYS': 14},
)
def pasture_measurement_stale(plot, params):
    if plot.land_use not in GRAZED:
        return None
    if plot.pasture_measured_at is None:
        return True
    return (params['today'] - plot.pasture_measured_at).days > params['MEASUREMENT_STALE_DAYS']


def last_depot_activity(plot) -> date:
    """Latest movement touching the depot, or the plot's own last update."""
    from agrostock.models.movement import Movement

    latest = Movement.objects.filter(
        Q(depot=plot) | Q(destination_depot=plot)
    ).aggregate(last=Max('timestamp'))['last']
    candidates = [plot.updated_at]
    if latest is not None:
        candidates.append(latest)
    return timezone.localdate(max(candidates))


def _unattended_message(plot, params):
    last = last_depot_activity(plot)
    return Message(
        title=f"Depósito sin movimientos: {plot.name}",
        description=f"Sin actividad desde el {last:%d/%m/%Y}. Verificar existencias.",
        metadata={'last_activity': last.isoformat()},
    )


@rule(
    'depot_unattended',
    name='Depósito sin actividad',
    entity=PLOT,
    priority=AlertPriority.MEDIUM,
    render=_unattended_message,
    defaults={'DEPOT_STALE_DAYS': 21},
)
def depot_unattended(plot, params):
    if not plot.is_depot:
        return None
    return (params['today'] - last_depot_activity(plot)).days > params['DEPOT_STALE_DAYS']


def _ndvi_message(plot, params):
    return Message(
        title=f"NDVI bajo: {plot.name}",
        description=(
            f"NDVI {plot.ndvi_value} por debajo de {params['NDVI_THRESHOLD']}. "
            f"Posible estrés de vegetación."
        ),
        metadata={
            'ndvi_value': str(plot.ndvi_value),
            'ndvi_updated_at': plot.ndvi_updated_at.isoformat() if plot.ndvi_updated_at else None,
            'threshold': str(params['NDVI_THRESHOLD']),
        },
    )


@rule(
    'ndvi_low',
    name='Índice de vegetación bajo',
    entity=PLOT,
    priority=AlertPriority.HIGH,
    render=_ndvi_message,
    defaults={'NDVI_THRESHOLD': 0.4},
)
def ndvi_low(plot, params):
    if plot.ndvi_value is None or plot.land_use not in VEGETATED:
        return None
    return float(plot.ndvi_value) < float(params['NDVI_THRESHOLD'])
