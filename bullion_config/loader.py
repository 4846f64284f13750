"""
Configuration Loader (``bullion_config.loader``).

Responsibility
--------------
Loads a YAML configuration set and parses it into the frozen dataclasses of
``bullion_config.schema``.  The single public entry point for runtime config
is ``bullion_config.get_active_config()``.

Invariants enforced
-------------------
* All parse errors raise ``ValueError`` or ``KeyError`` with descriptive
  messages; no silent defaults for required fields.
* ``compute_checksum`` produces a deterministic SHA-256 hash for
  configuration identity and change detection.

Failure modes
-------------
* Missing YAML file  -> ``FileNotFoundError`` propagates.
* Malformed YAML  -> ``yaml.YAMLError`` propagates.
* Missing required keys in parsed dict  -> ``KeyError`` propagates.
* Non-numeric rate or non-positive attempt bound  -> ``ValueError``.
"""

from __future__ import annotations

import hashlib
import json
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any

import yaml

from bullion_config.schema import EngineConfig, FixingIdPrefixes, LedgerAccounts

_LEDGER_ACCOUNT_KEYS = (
    "inventory_gold",
    "gold_stock",
    "making_charges",
    "premium_discount",
    "vat",
    "other_charges",
    "purity_difference",
    "fx_gain_loss",
    "fx_clearing",
    "fixed_gold",
    "hedge",
)


def load_yaml_file(path: Path) -> dict[str, Any]:
    """
    Load a single YAML file and return its contents as a dict.

    Raises:
        FileNotFoundError: if the file does not exist.
        yaml.YAMLError: if the file contains invalid YAML.
    """
    with open(path) as f:
        return yaml.safe_load(f) or {}


def parse_decimal(value: Any, field_name: str) -> Decimal:
    """Parse a Decimal from YAML (string or number)."""
    if isinstance(value, bool):
        raise ValueError(f"{field_name}: cannot parse decimal from {value!r}")
    try:
        return Decimal(str(value))
    except InvalidOperation as exc:
        raise ValueError(f"{field_name}: cannot parse decimal from {value!r}") from exc


def parse_ledger_accounts(data: dict[str, Any]) -> LedgerAccounts:
    """Parse LedgerAccounts; every account code is required."""
    missing = [key for key in _LEDGER_ACCOUNT_KEYS if key not in data]
    if missing:
        raise KeyError(f"ledger_accounts missing keys: {', '.join(missing)}")
    return LedgerAccounts(**{key: str(data[key]) for key in _LEDGER_ACCOUNT_KEYS})


def parse_fixing_id_prefixes(data: dict[str, Any] | None) -> FixingIdPrefixes:
    if not data:
        return FixingIdPrefixes()
    return FixingIdPrefixes(
        purchase_side=str(data["purchase_side"]),
        sale_side=str(data["sale_side"]),
    )


def parse_engine_config(data: dict[str, Any]) -> EngineConfig:
    """
    Parse an ``EngineConfig`` from a configuration document.

    Preconditions:
        - ``data`` contains ``config_id``, ``version`` and ``ledger_accounts``.
    Raises:
        KeyError: if required keys are missing.
        ValueError: if numeric fields cannot be parsed or are out of range.
    """
    engine = data.get("engine", {}) or {}
    prefixes = data.get("hedge_voucher_prefixes", {}) or {}

    max_id_attempts = int(engine.get("max_id_attempts", 50))
    if max_id_attempts < 1:
        raise ValueError(f"max_id_attempts must be >= 1, got {max_id_attempts}")

    default_rate = parse_decimal(
        engine.get("default_currency_rate", "1"), "default_currency_rate"
    )
    if default_rate <= 0:
        raise ValueError(f"default_currency_rate must be > 0, got {default_rate}")

    fallback = str(prefixes.get("fallback", "HXX"))
    by_type = {str(k): str(v) for k, v in prefixes.items() if k != "fallback"}

    return EngineConfig(
        config_id=str(data["config_id"]),
        version=int(data["version"]),
        ledger_accounts=parse_ledger_accounts(data["ledger_accounts"]),
        base_currency=str(engine.get("base_currency", "AED")),
        default_currency_rate=default_rate,
        enforce_stock_underflow=bool(engine.get("enforce_stock_underflow", True)),
        max_id_attempts=max_id_attempts,
        hedge_voucher_prefixes=by_type,
        hedge_voucher_fallback=fallback,
        fixing_id_prefixes=parse_fixing_id_prefixes(data.get("fixing_id_prefixes")),
        checksum=compute_checksum(data),
    )


def compute_checksum(data: dict[str, Any]) -> str:
    """
    Compute SHA-256 checksum of canonical JSON serialization.

    Postconditions:
        - Returns a hex-encoded SHA-256 hash string.
        - Identical ``data`` always produces identical checksums.
    """
    canonical = json.dumps(data, sort_keys=True, default=str)
    return hashlib.sha256(canonical.encode()).hexdigest()
