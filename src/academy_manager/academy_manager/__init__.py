"""Academy Manager package.

Offline-first management backend for a small tuition academy: students,
timetable, attendance, fees and exam marks live in a local snapshot and
replicate to a remote table store through a durable mutation queue.
Feature modules (students, attendance, fees, ...) each carry a thin Flask
controller over a plain service layer.
"""
