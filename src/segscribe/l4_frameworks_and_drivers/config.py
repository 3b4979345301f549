"""Application defaults and the config factory — lives in L4, not domain."""

from __future__ import annotations

import copy

from segscribe.l1_entities.config import AppConfig
from segscribe.l3_interface_adapters.gateways.paths import LOG_DIR
from segscribe.l3_interface_adapters.gateways.yaml_config_loader import deep_merge

APP_CONFIG_DEFAULTS: dict = {
    'pipeline': {
        'segment_duration_ms': 3000,
        'sample_rate': 16000,
        'activity_threshold': 0.01,
        'pre_emphasis_alpha': 0.97,
        'target_peak': 0.8,
        'recognizer_timeout_ms': 30_000,
    },
    'recognizer': {
        'model': 'base-q8_0',
        'fallback_models': ['base'],
        'language': 'zh',
    },
    'logging': {
        'directory': str(LOG_DIR),
        'level': 'DEBUG',
    },
}


def build_app_config(raw: dict) -> AppConfig:
    """Merge *raw* user overrides on top of defaults, then validate."""
    merged = copy.deepcopy(APP_CONFIG_DEFAULTS)
    deep_merge(merged, raw)
    return AppConfig.model_validate(merged)
