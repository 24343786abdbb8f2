# noqa: D104 - package initialization
from .logging import configure_structured_logging  # noqa: F401
from .metrics import metrics_blueprint, record_play_history, record_provider_request, record_token_refresh  # noqa: F401
from .tracing import init_tracing  # noqa: F401
