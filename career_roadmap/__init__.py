"""Career roadmap coach: Gemini-generated skill plans with a mentor chat."""
