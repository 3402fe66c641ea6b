"""Default challenge and twist banks seeded into every new game."""

DEFAULT_CHALLENGES = [
    {'mode': 'Story', 'text': 'Write a 150-word story about a robot who learns to dream.'},
    {'mode': 'Story', 'text': 'Explain photosynthesis to a 6-year-old using a bedtime story.'},
    {'mode': 'Image', 'text': 'Design a poster of a 1920s travel ad for a city on Mars.'},
    {'mode': 'Business', 'text': 'Draft a 2-sentence process improvement for reducing support call handle time by 10%.'},
    {'mode': 'Business', 'text': 'Create a one-paragraph elevator pitch for a new student finance self-serve portal.'},
    {'mode': 'Image', 'text': 'Create an image prompt for a mascot celebrating a big Cubs win in outer space.'},
    {'mode': 'Speed', 'text': "Turn this weak prompt into a strong one: 'make it better'"},
    {'mode': 'Meme', 'text': 'Craft a meme caption about coffee-powered deployments on Friday at 4:59pm.'},
    {'mode': 'Corporate', 'text': 'Generate 3 bullet points for a status update on an AI pilot with measurable KPIs.'},
    {'mode': 'Haiku', 'text': 'Turn an incident postmortem into a respectful 3-line haiku with action items.'},
]

DEFAULT_TWISTS = [
    'Add one unexpected constraint (e.g., double-acrostic, emoji-only, ABAB rhyme).',
    'Change the audience to: executives with 30 seconds to spare.',
    'Rewrite in the voice of a 1980s infomercial.',
    'Make it bilingual (English + your choice) in one response.',
    'Enforce hard limits: 2 sentences, max 20 words total.',
    'Introduce a tasteful plot twist in the final line.',
    'Switch the format to bullet points with exactly 5 bullets.',
    'Turn seriousness into humor (or vice versa), but preserve facts.',
    'Make it data-driven: add 2 plausible metrics.',
    "Force a persona: 'meticulous auditor' or 'chaotic creative director'.",
]
