from .config import GatewayConfig, load_config
from .runner import AppRun, start_run

__all__ = ["GatewayConfig", "load_config", "AppRun", "start_run"]
