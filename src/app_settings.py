"""
Application settings
====================
YAML-backed configuration for the ledger service.

  bill        defaults applied when a new bill is created
  extraction  thresholds of the extraction tiers
  storage     where saved bills live
  logging     loguru sink settings

A missing file or missing keys fall back to the built-in defaults.
"""

import copy
import os
from dataclasses import dataclass, field
from decimal import Decimal
from pathlib import Path
from typing import Dict, List, Optional

import yaml
from loguru import logger

from allocation import RoundingMode
from ledger import COLOR_PALETTE, HUNDRED, to_decimal
from utils import ensure_directory


DEFAULT_CONFIG_PATH = Path(__file__).parent.parent / "config" / "divvy_config.yaml"


def _default_config() -> Dict:
    """Return default configuration"""
    return {
        'bill': {
            'default_tax_percent': 8.0,
            'default_tip_percent': 15.0,
            'currency_code': 'USD',
            'rounding_mode': 'nearest',
            'save_history': True,
            'default_participants': [],
        },
        'extraction': {
            'min_cascade_items': 2,
            'proximity_price_min': 0.50,
            'proximity_price_max': 999.99,
            'proximity_window': 3,
            'fuzzy_price_min': 1.00,
            'fuzzy_price_max': 100.00,
        },
        'storage': {
            'backend': 'json',
            'path': 'data/bills.json',
        },
        'logging': {
            'level': 'INFO',
            'file': 'logs/divvy.log',
        },
    }


def _deep_merge(base: Dict, override: Dict) -> Dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Optional[str] = None) -> Dict:
    """Load configuration from YAML file, filling gaps from the defaults."""
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not os.path.exists(config_path):
        logger.warning(f"Config file not found: {config_path}, using defaults")
        return _default_config()

    with open(config_path, 'r', encoding='utf-8') as f:
        loaded = yaml.safe_load(f) or {}

    return _deep_merge(_default_config(), loaded)


@dataclass
class DefaultParticipant:
    name: str
    color_tag: str = "blue"


@dataclass
class AppSettings:
    """The `bill` section, typed."""
    default_tax_percent: Decimal = Decimal("8.0")
    default_tip_percent: Decimal = Decimal("15.0")
    currency_code: str = "USD"
    rounding_mode: RoundingMode = RoundingMode.NEAREST
    save_history: bool = True
    default_participants: List[DefaultParticipant] = field(default_factory=list)

    @classmethod
    def from_config(cls, config: Dict) -> "AppSettings":
        section = config.get('bill', {}) if 'bill' in config else config
        defaults = _default_config()['bill']

        def pct(key: str) -> Decimal:
            value = to_decimal(section.get(key, defaults[key]))
            if value < 0 or value > HUNDRED:
                raise ValueError(f"{key} must be between 0 and 100, got {value}")
            return value

        mode = str(section.get('rounding_mode', defaults['rounding_mode'])).lower()
        try:
            rounding = RoundingMode(mode)
        except ValueError:
            logger.warning(f"[AppSettings] Unknown rounding mode '{mode}', using 'nearest'")
            rounding = RoundingMode.NEAREST

        participants = []
        for entry in section.get('default_participants') or []:
            if isinstance(entry, str):
                entry = {'name': entry}
            color = entry.get('color_tag', 'blue')
            if color not in COLOR_PALETTE:
                raise ValueError(f"Unknown color tag '{color}' for default participant")
            participants.append(DefaultParticipant(name=entry['name'], color_tag=color))

        return cls(
            default_tax_percent=pct('default_tax_percent'),
            default_tip_percent=pct('default_tip_percent'),
            currency_code=str(section.get('currency_code', defaults['currency_code'])),
            rounding_mode=rounding,
            save_history=bool(section.get('save_history', defaults['save_history'])),
            default_participants=participants,
        )

    def to_config(self) -> Dict:
        return {
            'default_tax_percent': float(self.default_tax_percent),
            'default_tip_percent': float(self.default_tip_percent),
            'currency_code': self.currency_code,
            'rounding_mode': self.rounding_mode.value,
            'save_history': self.save_history,
            'default_participants': [
                {'name': p.name, 'color_tag': p.color_tag}
                for p in self.default_participants
            ],
        }


def save_settings(settings: AppSettings, config_path: Optional[str] = None) -> str:
    """
    Write the `bill` section back to YAML, keeping the other sections.

    Returns the path written.
    """
    config_path = str(config_path or DEFAULT_CONFIG_PATH)
    config = load_config(config_path)
    config['bill'] = settings.to_config()

    ensure_directory(os.path.dirname(config_path))
    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config, f, sort_keys=False)

    logger.info(f"[AppSettings] saved to {config_path}")
    return config_path
