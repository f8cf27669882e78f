"""Service layer.

Learn: API routes call services, services call the stores. Services take
their collaborators in the constructor, so tests can hand them in-memory
fakes instead of a database.
"""
