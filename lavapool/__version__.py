__version__ = __VERSION__ = "1.0.0"
