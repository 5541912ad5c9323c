"""SeaWatch maritime intelligence data layer."""

__version__ = "0.1.0"
