"""
skillpack:
    Install versioned AI-assistant assets into native client configuration
"""

__version__ = "0.1.0"
