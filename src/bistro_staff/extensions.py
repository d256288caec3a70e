"""
Access to the per-application store and order state machine.
"""

from __future__ import annotations

from flask import Flask, current_app

from bistro_shared.db import Store
from bistro_shared.services.order_state_machine import OrderStateMachine

STORE_KEY = "bistro_store"
STATE_MACHINE_KEY = "bistro_state_machine"


def init_extensions(app: Flask, store: Store, state_machine: OrderStateMachine) -> None:
    app.extensions[STORE_KEY] = store
    app.extensions[STATE_MACHINE_KEY] = state_machine


def get_store() -> Store:
    return current_app.extensions[STORE_KEY]


def get_state_machine() -> OrderStateMachine:
    return current_app.extensions[STATE_MACHINE_KEY]
