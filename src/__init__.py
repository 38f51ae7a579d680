"""
Public Map - Core Package

Ingests field-collected points and residents and publishes a
privacy-reduced daily snapshot for map display and reporting.
"""
