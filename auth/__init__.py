"""auth/ -- Authentication, session and authorization package for TaskFlow.

Layer rule: auth/ imports only stdlib, third-party libraries and core/.
It does NOT import from api/ or tasks/. api/ imports from auth/, not the
other way around.
"""
