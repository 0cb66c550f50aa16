# showorder/config.py
# -*- coding: utf-8 -*-
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SETTINGS_ENV_VAR = 'SHOWORDER_SETTINGS'
DEFAULT_SETTINGS_PATH = Path.home() / '.config' / 'showorder' / 'settings.json'

RENAME_STYLES = ('powershell', 'sh')


class AppConfig:
    def __init__(self, settings_path=None):
        if settings_path is None:
            settings_path = os.environ.get(SETTINGS_ENV_VAR) or DEFAULT_SETTINGS_PATH
        self.settings_path = Path(settings_path)
        self.defaults = {
            # --- Matching ---
            'max_count': 5,           # Subtitles per file used for the fingerprint
            'max_distance': None,     # Only map best distances below this (None = always map)
            'track_number': None,     # Force a subtitle track instead of the first English one
            'workers': 0,             # Worker processes (0 = one per CPU)

            # --- OCR ---
            'ocr_language': 'eng',
            'ocr_psm': 6,
            'ocr_oem': 3,
            'tesseract_cmd': '',
            'ocr_min_area': 30000,    # Upscale bitmaps smaller than this many pixels
            'ocr_scale': 1.5,
            'ocr_background': [0, 0, 0],

            # --- Report ---
            'rename_style': 'powershell',  # 'powershell' or 'sh'
        }
        self.settings = self.defaults.copy()
        self.load()

    def load(self):
        if not self.settings_path.exists():
            self.settings = self.defaults.copy()
            return

        try:
            with open(self.settings_path, 'r', encoding='utf-8') as f:
                loaded_settings = json.load(f)
        except (json.JSONDecodeError, IOError) as e:
            logger.warning(f"Could not read settings from {self.settings_path}: {e}; using defaults")
            self.settings = self.defaults.copy()
            return

        if not isinstance(loaded_settings, dict):
            logger.warning(f"Settings file {self.settings_path} is not a JSON object; using defaults")
            self.settings = self.defaults.copy()
            return

        for key in list(loaded_settings):
            if key not in self.defaults:
                logger.debug(f"Ignoring unknown setting '{key}'")
                del loaded_settings[key]
        for key, default_value in self.defaults.items():
            if key not in loaded_settings:
                loaded_settings[key] = default_value

        if loaded_settings['rename_style'] not in RENAME_STYLES:
            logger.warning(f"Unknown rename_style '{loaded_settings['rename_style']}', using 'powershell'")
            loaded_settings['rename_style'] = 'powershell'
        self.settings = loaded_settings

    def save(self):
        try:
            self.settings_path.parent.mkdir(parents=True, exist_ok=True)
            settings_to_save = {k: self.settings.get(k) for k in self.defaults.keys() if k in self.settings}
            with open(self.settings_path, 'w', encoding='utf-8') as f:
                json.dump(settings_to_save, f, indent=4)
        except IOError as e:
            logger.error(f"Error saving settings: {e}")

    def get(self, key: str, default=None):
        return self.settings.get(key, default)

    def set(self, key: str, value):
        self.settings[key] = value

    def override(self, **values):
        """Apply command line overrides; None means "not given"."""
        for key, value in values.items():
            if value is not None:
                self.set(key, value)
