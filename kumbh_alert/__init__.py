"""
Kumbh Alert Hub - emergency-response coordination backend.
"""
