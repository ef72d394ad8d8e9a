"""Schema capabilities detected once per application.

Older databases may predate the task notification columns. Rather than caching
that fact in a process-wide flag, the result lives on the Flask app and is
handed explicitly to the components that depend on it.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass

import sqlalchemy as sa
from flask import Flask
from sqlalchemy.exc import SQLAlchemyError

EXTENSION_KEY = "solarpm.capabilities"


@dataclass(frozen=True)
class Capabilities:
    task_notification_column: bool = True


def detect_capabilities(engine) -> Capabilities:
    try:
        inspector = sa.inspect(engine)
        if "tasks" not in inspector.get_table_names():
            return Capabilities(task_notification_column=False)
        columns = {column["name"] for column in inspector.get_columns("tasks")}
    except SQLAlchemyError:
        logging.warning("Schema inspection failed, assuming notification columns are missing", exc_info=True)
        return Capabilities(task_notification_column=False)
    exists = "notification_enabled" in columns and "last_notified_at" in columns
    logging.info("Column check tasks.notification_enabled exists? %s", exists)
    return Capabilities(task_notification_column=exists)


def get_capabilities(app: Flask, db) -> Capabilities:
    capabilities = app.extensions.get(EXTENSION_KEY)
    if capabilities is None:
        with app.app_context():
            capabilities = detect_capabilities(db.engine)
        app.extensions[EXTENSION_KEY] = capabilities
    return capabilities


def set_capabilities(app: Flask, capabilities: Capabilities) -> None:
    app.extensions[EXTENSION_KEY] = capabilities
