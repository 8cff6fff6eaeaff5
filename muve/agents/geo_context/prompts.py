"""Geo-context check prompts, one per check kind."""

from muve.agents.geo_context.kinds import CheckKind

_PREAMBLE = "You are an accessibility expert. A property is located at {address} (lat: {lat}, lon: {lon}).\n\n"

CHECK_PROMPTS: dict[CheckKind, str] = {
    CheckKind.ELEVATION: _PREAMBLE + """Elevation samples in a ~200m radius around the property (in meters):
{data}

Write a CONCISE 1-2 sentence assessment of how challenging the surrounding terrain would be for someone
with mobility issues (wheelchair, walker, etc.). Focus on slope steepness, hills and walkability.""",

    CheckKind.PROXIMITY: _PREAMBLE + """Nearby services found (within ~1km, hospitals within ~1.5km):
{data}

Write a CONCISE 1-2 sentence assessment of how convenient the area is for someone with mobility challenges
who depends on nearby public transit, healthcare and essential services. Name what is available and any gaps.""",

    CheckKind.POLLUTION: _PREAMBLE + """Potential noise and light pollution sources found nearby:
{data}

Write a CONCISE 1-2 sentence assessment of noise and light pollution in this area for someone sensitive to
loud noises, bright lights or busy environments (autism spectrum, PTSD, sensory processing disorders).""",

    CheckKind.LIGHTING: _PREAMBLE + """Street lighting found nearby:
{data}

Write a CONCISE 1-2 sentence assessment of street lighting in the immediate vicinity and how it affects
safety and navigation at night for people with visual impairments.""",

    CheckKind.SIDEWALK: _PREAMBLE + """Pedestrian infrastructure found within ~500m of the property:
{data}

Write a CONCISE 1-2 sentence assessment of how wheelchair- and mobility-device-friendly the pedestrian
environment is. Focus on curb cuts, accessible crossings and continuous footways.""",

    CheckKind.AIR_QUALITY: _PREAMBLE + """Air quality readings from the nearest monitoring stations:
{data}

Write a CONCISE 1-2 sentence assessment of local air quality for residents with respiratory conditions
(asthma, COPD, allergies). Reference pollutant levels where available and note limited coverage.""",

    CheckKind.EMERGENCY: _PREAMBLE + """Emergency services found near the property:
{data}

Write a CONCISE 1-2 sentence assessment of how well-served the area is by emergency services for residents
who live alone with disabilities or need rapid emergency response.""",
}
