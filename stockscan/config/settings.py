# stockscan/config/settings.py
"""Configuration settings for the scan station."""
import os
from dataclasses import dataclass


def _env_float(name, default):
    value = os.getenv(name)
    return float(value) if value else default


def _env_int(name, default):
    value = os.getenv(name)
    return int(value) if value else default


@dataclass
class CameraConfig:
    DEVICE_INDEX = _env_int("STOCKSCAN_CAMERA_INDEX", 0)
    RESOLUTION = (1280, 720)
    SCAN_INTERVAL = 0.05


@dataclass
class ScannerConfig:
    RESCAN_DELAY = 2.0
    # pyzbar symbol names, linear retail formats first
    SYMBOLOGIES = ("EAN13", "EAN8", "UPCA", "UPCE", "CODE128", "CODE39", "I25")


@dataclass
class SessionConfig:
    QUANTITY_MIN = 1
    QUANTITY_MAX = 100
    QUANTITY_DEFAULT = 1
    SUCCESS_NOTICE_SECONDS = 3.0
    ERROR_NOTICE_SECONDS = 4.0
    HISTORY_SIZE = 5


@dataclass
class StoreConfig:
    BACKEND = os.getenv("STOCKSCAN_STORE", "memory")
    FIRESTORE_PROJECT_ID = os.getenv("FIRESTORE_PROJECT_ID", "")
    FIRESTORE_DATABASE = os.getenv("FIRESTORE_DATABASE", "(default)")
    FIRESTORE_API_KEY = os.getenv("FIRESTORE_API_KEY", "")
    FIRESTORE_BASE_URL = "https://firestore.googleapis.com/v1"
    CONNECTION_TIMEOUT = _env_float("STOCKSCAN_STORE_TIMEOUT", 10.0)
    MAX_RETRIES = 3
    MAX_RETRY_TIME = 30
    ACTOR_ID = os.getenv("STOCKSCAN_ACTOR_ID", "anonymous")
    LOW_STOCK_THRESHOLD = 5


@dataclass
class LabelConfig:
    PRIMARY_SYMBOLOGY = "ean13"
    FALLBACK_SYMBOLOGY = "code128"
    MODULE_WIDTH = 0.3      # mm per bar
    MODULE_HEIGHT = 15.0    # mm
    QUIET_ZONE = 2.5
    FONT_SIZE = 10
    TEXT_DISTANCE = 5.0
    DPI = 300


@dataclass
class HardwareConfig:
    ENABLED = os.getenv("STOCKSCAN_HARDWARE", "0") == "1"
    RED_PIN = 17
    GREEN_PIN = 27
    BLUE_PIN = 22
    BUZZER_PIN = 18
    BEEP_DURATION = 0.05


@dataclass
class PathConfig:
    BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    OUTPUT_DIR = os.getenv("STOCKSCAN_OUTPUT_DIR", os.path.join(BASE_DIR, 'output'))
    LOG_DIR = os.path.join(OUTPUT_DIR, 'logs')
    LABEL_DIR = os.path.join(OUTPUT_DIR, 'labels')
