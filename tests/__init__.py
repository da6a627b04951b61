"""
modelcascade test suite.

Covers the provider catalog, the fallback executor, configuration
loading, transports, the capability registry and metric hooks.
"""
