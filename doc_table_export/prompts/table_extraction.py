TABLE_EXTRACTION_PROMPT = """
Extract and display what is written in this document (only the handwritten or filled-in part, in the form of rows and columns, not printed text or watermarks) as JSON with rows and columns.
Do not wrap the JSON in backticks or any other markers, and do not include explanatory text.
If there is a date, keep the separation of day, month and year with "/" or "-" exactly as written in the document.
Generate only rows and columns and no page numbers, i.e. the whole JSON must be one single flat array of objects.
Numbers must be returned as numbers, not as text, i.e. numbers must not be enclosed in double quotes.
Display quantities as quantities with their units as text, for example "10mL".
""".strip()
