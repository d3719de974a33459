"""
signals.py — Change notifications for balance-affecting mutations.

Services send these after a successful flush. Anything that needs to react
to a change (summary caches in a client, log lines, tests) connects a
receiver explicitly instead of relying on ORM events.

    from backend.app import signals

    @signals.balances_changed.connect
    def on_change(sender, person_ids, **extra):
        ...

Every signal is sent with the service module name as `sender`.
"""

from __future__ import annotations

from blinker import Namespace

_signals = Namespace()

# kwargs: split_bill
split_bill_created = _signals.signal("split-bill-created")

# kwargs: split_bill, participant, has_paid
participant_settled = _signals.signal("participant-settled")

# kwargs: group_expense
group_expense_settled = _signals.signal("group-expense-settled")

# kwargs: transaction
transaction_recorded = _signals.signal("transaction-recorded")

# kwargs: person_ids (set[int]), everyone whose net balance may have moved.
balances_changed = _signals.signal("balances-changed")
