from iptgram.bootstrap.exception_handlers import register_exception_handlers
from iptgram.bootstrap.middleware import register_core_middleware
from iptgram.bootstrap.routes import register_default_route, register_domain_routes
from iptgram.bootstrap.system_routes import register_system_routes
from iptgram.bootstrap.validation import validate_startup_config, warn_permissive_posture

__all__ = [
    "register_core_middleware",
    "register_default_route",
    "register_domain_routes",
    "register_system_routes",
    "register_exception_handlers",
    "validate_startup_config",
    "warn_permissive_posture",
]
