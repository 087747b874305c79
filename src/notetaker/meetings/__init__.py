"""Meeting notetaker module -- data models, repository, and bot pipeline.

Provides the meeting data layer (Pydantic schemas, SQLAlchemy models,
MeetingRepository), calendar event ingestion, transcript parsing, and the
Recall.ai bot lifecycle in the ``bot`` subpackage.
"""
