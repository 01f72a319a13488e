"""dailywall: a fresh AI generated desktop wallpaper every day."""

__version__ = "0.1.0"
