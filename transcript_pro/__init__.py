"""Core modules for the Transcript Pro pipeline.

Modules:
- decode_audio: media decoding, resampling and mono down-mix
- audio_utils: PCM slicing and WAV chunk encoding
- gemini_client: model calls for transcription, term detection and translation
- transcription: chunked transcription with whole-file fallback
- reconcile: segment merging and pause/duration metrics
- annotation: batch term detection and translation passes
- session: coordinator owning the segment list
- supabase_store: database upload
"""
