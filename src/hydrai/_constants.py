"""Internal constants shared across the library."""

WS_URL = "wss://hydrai.example.com/ws"
API_BASE_URL = "https://hydrai.example.com"
USER_AGENT = "hydrai-python"

# Stream protocol
SENSOR_SOURCE = "arduino"
CLIENT_SOURCE = "client"

# Inference service endpoints
CLASSIFY_ENDPOINT = "/api/hydrai/classify"
PREDICT_ENDPOINT = "/api/hydrai/predict"
PREDICT_MODE = "hora"

# ------------------------------------------------------------------
# Defaults
# ------------------------------------------------------------------

DEFAULT_RECONNECT_DELAY: float = 5.0
DEFAULT_WINDOW_SIZE: int = 7
DEFAULT_HORIZONS: tuple[int, ...] = (0, 1, 5, 10, 15, 30, 60)
DEFAULT_ALERT_HORIZON: int = 60
DEFAULT_BANNER_TTL_MS: int = 5000
DEFAULT_FADE_MS: int = 300

ALERT_TITLE = "Alert!"
