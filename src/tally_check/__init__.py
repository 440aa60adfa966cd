"""Tally Check package.

University attendance dashboard organized by feature modules (users, courses,
sessions, attendance, beacons, ...) with a thin Flask controller layer over
service/repository layers. All durable state lives in Supabase.
"""

__version__ = "1.0.0"
