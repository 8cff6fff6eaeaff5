"""Evaluation pipeline prompts."""

NONE_TOKEN = "NONE"
CHECKS_MARKER = "SPECIALTY_CHECKS:"

CHECKLIST_PROMPT = """You are an accessibility expert helping someone judge whether a home suits them.

Their needs, in their own words:
{user_needs}

Write a concise checklist of things that would be a problem for this person and
that could be SEEN in listing photos of the home (for example: steps at the
entrance, narrow doorways, bathtub without grab bars, steep interior stairs,
high cabinets, loose rugs). One item per line, each starting with "- ", using
short lowercase names (2-4 words) that can be reported back verbatim.

Then, on the very last line, declare which neighbourhood checks matter for this
person, as a comma-separated list chosen ONLY from:
elevation, proximity, pollution, lighting, sidewalk, air_quality, emergency

Format the last line exactly as:
""" + CHECKS_MARKER + """ <comma-separated list, or """ + NONE_TOKEN + """>"""

BATCH_ANALYSIS_PROMPT = """You are inspecting {count} listing photo(s) of a home for accessibility problems.

Checklist of problems to look for:
{checklist}

For each photo, in the SAME ORDER as the photos were provided, report which
checklist items are clearly visible. Use the checklist item names verbatim,
comma-separated. If none are visible, use exactly "{none_token}".
When an item is visible, give the approximate pixel coordinates [x, y] of where
it appears in that photo; otherwise null.

Respond with a JSON array of exactly {count} object(s):
[
  {{"image": 1, "trigger_found": "narrow doorway, steep stairs", "pixel_coordinates": [412, 230]}},
  {{"image": 2, "trigger_found": "{none_token}", "pixel_coordinates": null}}
]
Output ONLY the JSON array."""

SCORE_PROMPT = """You are an accessibility expert writing a final report on a home for someone with these needs:
{user_needs}

Problems spotted in the listing photos (one line per sighting, repeats mean it was seen in several photos):
{issues}

Findings about the surrounding area:
{context}

Rate how accessible this home is for this person from 0 (unliveable) to 100
(no barriers found), and write a short plain-language summary (3-5 sentences)
explaining the score and the most important concerns.

Respond with strict JSON only:
{{"score": <integer 0-100>, "summary": "<text>"}}"""
