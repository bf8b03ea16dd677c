# Description: Prompt templates sent to Gemini along with the swing video.

GOLF_SWING_ANALYSIS_PROMPT = """
This video shows a golf swing. Analyze it in detail from the following points of view and answer in {language}:

1. **Swing form**: address, backswing, downswing, impact, follow-through
2. **Tempo and rhythm**: overall tempo and the timing of the transition
3. **Weight shift**: how weight moves between the left and right side
4. **Axis stability**: head position and any sway of the body axis
5. **Club path**: the swing plane and path through the ball
6. **Finish**: balance and position at the finish
7. **Improvement advice**: 3 to 5 concrete points, each with why it matters and how to practice it

**Important**: Only describe what can actually be observed in the video and avoid guessing.
If something cannot be seen, say that it cannot be confirmed.
Keep the tone positive and encouraging; the player wants to get better.
"""


def build_analysis_prompt(language: str) -> str:
    return GOLF_SWING_ANALYSIS_PROMPT.format(language=language).strip()
