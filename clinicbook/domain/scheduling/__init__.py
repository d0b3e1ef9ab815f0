"""
Scheduling Domain - appointment booking engine

Decides whether a proposed appointment (patient + staff + service + time window)
can be created or changed without breaking the booking invariants:

- a staff member is never double-booked, except patients sharing one slot of a
  group service (capacity > 1) up to its capacity
- a patient is never in two scheduled appointments at once
- a booking lies inside the staff member's weekly template and outside every
  availability exclusion

Structure:
```
domain/scheduling/
├── intervals.py     # TimeInterval, half-open [start, end)
├── availability.py  # Weekly templates + exclusions -> AvailabilityResolver
├── conflicts.py     # ConflictDetector over scheduled appointments
├── service.py       # AppointmentScheduler: book / reschedule / status / delete
├── calendar.py      # CalendarQueryService: range queries, staff day view
├── errors.py        # SchedulingError hierarchy (mapped to HTTP in main.py)
├── repository.py    # Queries and row locks; never commits
├── schemas.py       # Request/response models
└── router.py        # /appointments, /staff/{id}/availability, /recurring-rules
```

Mutations run in a single transaction holding row locks on the staff and patient
involved. On PostgreSQL, exclusion constraints created with the appointments table
catch any overlap that slips past the application check.
"""
