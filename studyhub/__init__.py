"""StudyHub: document upload and AI tutoring API."""
