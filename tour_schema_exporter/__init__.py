"""Core logic for the Tour Schema Exporter.

The Gradio UI lives in `app.py`. This package contains pure functions that:
- infer and merge a schema tree across many JSON documents
- resolve dot/array paths such as `DailyList[].AttractionsList[].Name`
- flatten each document into one export row
- match rows by keyword and documents by breadcrumb codes
"""
