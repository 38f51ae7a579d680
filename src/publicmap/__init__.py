"""
Public map core: jittered point publishing, daily snapshot cache,
exclusive resident assignments, geocoding cache and reporting.
"""

__version__ = "0.1.0"
