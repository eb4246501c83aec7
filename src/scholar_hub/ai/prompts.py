"""Prompt templates for the AI gateway capabilities."""

COACH_SYSTEM_PROMPT = """\
You are the Scholar Hub AI Guru, a world-class academic mentor.
The user is in grade: {grade}.
Answer in: {language}.
Always provide step-by-step logic for math. Use analogies for science.
Be encouraging and concise unless deep explanation is needed.
"""

IMAGE_ONLY_PROMPT = "Solve the attached image problem step-by-step."

QUIZ_PROMPT = """\
Generate a 5-question academic mock test about "{topic}" for a student in {grade}.

Respond ONLY with a JSON object:
{{
    "title": "<quiz title>",
    "questions": [
        {{
            "question": "<question text>",
            "options": ["<option>", "<option>", "<option>", "<option>"],
            "correct_answer_index": <0-based index of the correct option>,
            "explanation": "<one sentence>"
        }}
    ]
}}
"""

STUDY_PACK_PROMPT = """\
Summarize the study material provided by the user and turn its key facts into flashcards.

Respond ONLY with a JSON object:
{
    "summary": "<concise summary>",
    "flashcards": [{"front": "<question or term>", "back": "<answer or definition>"}]
}
"""

PRIORITY_PROMPT = """\
You help a student decide what to work on first. Given their open tasks, \
return them in recommended order with a short rationale for each.

Respond ONLY with a JSON object:
{
    "priorities": [{"task_id": "<id from the input>", "rationale": "<one sentence>"}]
}
"""

BREAKDOWN_PROMPT = """\
Break the student's task into 3-6 small, concrete steps.

Respond ONLY with a JSON object:
{"steps": ["<step>", "<step>"]}
"""

HABITS_PROMPT = """\
Suggest 3-5 daily study habits for a student in grade {grade}. Write titles in {language}.

Respond ONLY with a JSON object:
{{
    "habits": [{{"title": "<habit>", "time": "<e.g. 07:00 AM>", "duration_minutes": <int>}}]
}}
"""

GK_PROMPT = """\
Generate a random, high-quality General Knowledge question with 4 unique options \
and one correct answer. Language: {language}.

Respond ONLY with a JSON object:
{{"question": "<text>", "options": ["<a>", "<b>", "<c>", "<d>"], "correct_answer_index": <0-3>}}
"""

BURNOUT_PROMPT = """\
Review the student's weekly timetable and list any burnout risks you see \
(overloaded days, no breaks, late sessions). Return an empty list if none.

Respond ONLY with a JSON object:
{"risks": ["<risk>"]}
"""

FLOW_PROMPT = """\
Suggest a focused work block length and one tip to reach flow on the student's task.

Respond ONLY with a JSON object:
{"minutes": <int>, "tip": "<one sentence>"}
"""

FORUM_REPLY_PROMPT = "Write a concise, friendly peer response to this study forum post."

INSIGHT_PROMPT = (
    "Give a one-line motivational message for a student who finished {done} of {total} tasks today."
)
