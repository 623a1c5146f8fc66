"""ProManager: personal project and task tracker."""

__version__ = "0.1.0"
