"""
Tribal Intel services.

Feed clients, the conquest pipeline, the building upgrade engine and the
periodic loops that drive them.
"""
