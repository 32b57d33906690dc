"""Temperature unit conversion and display helpers."""

from __future__ import annotations


def celsius_to_fahrenheit(celsius: float) -> float:
    """Convert Celsius to Fahrenheit."""
    return celsius * 9 / 5 + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    """Convert Fahrenheit to Celsius."""
    return (fahrenheit - 32) * 5 / 9


def format_dual(celsius: float) -> str:
    """Format a Celsius reading as "X.X°C / Y.Y°F"."""
    fahrenheit = celsius_to_fahrenheit(celsius)
    return f"{celsius:.1f}°C / {fahrenheit:.1f}°F"
