"""Core modules for the open_scribe transcription assistant.

Modules:
- timestamps: canonical HH:MM:SS.mmm normalization and conversions
- recovery: segment recovery from imperfect model output
- gemini_client: transcription, translation and speech calls to the model
- transcript_io: timing checks and SRT/JSON export
- audio_utils: mime guessing, duration probe, PCM to WAV
"""
