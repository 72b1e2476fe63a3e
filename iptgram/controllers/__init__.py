from iptgram.controllers.home import HomeController
from iptgram.mvc import ControllerRegistry


def build_controller_registry() -> ControllerRegistry:
    registry = ControllerRegistry()
    registry.register(HomeController)
    return registry


__all__ = ["HomeController", "build_controller_registry"]
