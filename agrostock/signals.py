"""
Agrostock signals.

Upstream collaborators (cost accounting, notifications) subscribe here
instead of polling the ledger:

    from django.dispatch import receiver
    from agrostock.signals import remittance_received

    @receiver(remittance_received)
    def notify_pending_items(sender, remittance, pending, **kwargs):
        ...

Signals are sent after the enclosing transaction commits.
"""

from django.dispatch import Signal

# kwargs: movement
movement_registered = Signal()

# kwargs: remittance, pending (items awaiting Input creation)
remittance_received = Signal()

# kwargs: alert
alert_created = Signal()

# kwargs: alert
alert_closed = Signal()
