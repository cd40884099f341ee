"""vcon-wtf: transcribe vCon audio dialogs into WTF analysis entries.

The package validates incoming vCon documents, dispatches their audio
dialogs to a speech recognition backend and attaches the resulting
``wtf_transcription`` analysis entries back onto the document.
"""

__version__ = "0.1.0"

WTF_ANALYSIS_TYPE = "wtf_transcription"
WTF_SCHEMA_ID = "wtf-1.0"

__all__ = ["__version__", "WTF_ANALYSIS_TYPE", "WTF_SCHEMA_ID"]
