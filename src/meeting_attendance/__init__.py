"""Meeting Attendance package.

Organized by feature modules (organization, members, tiers, meetings,
attendance) with a thin Flask controller layer over service/repository layers.
The meeting resolver and the attendance edit session carry the business rules.
"""
