"""Prompt templates for the generation service."""

STUDY_PLAN_PROMPT = """Create a structured study plan from the following documents.

{documents}

Return ONLY a valid JSON object (no markdown, no code fences) with exactly this structure:
{{
  "chapters": [
    {{
      "title": "Chapter title",
      "description": "Chapter description",
      "lessons": [
        {{
          "title": "Lesson title",
          "description": "Lesson description",
          "keyPoints": ["key point 1", "key point 2"],
          "estimatedDuration": "30 mins"
        }}
      ]
    }}
  ]
}}

Rules:
1. Chapter titles must be unique, and lesson titles must be unique within the plan.
2. Order chapters and lessons in the sequence a student should study them.
3. The response must be ONLY the JSON object and must parse as JSON."""

LESSON_CONTENT_PROMPT = """You are a professional tutor. Write detailed teaching content for one lesson.

Lesson title: "{title}"
Lesson description: "{description}"
Key points to cover: {key_points}

Your response must be a valid JSON object with exactly this structure:
{{
  "title": "The lesson title",
  "content": "The main lesson content with detailed explanations",
  "objectives": ["Specific learning objectives"],
  "examples": [
    {{
      "title": "Example title",
      "code": "Code snippet, only if applicable",
      "explanation": "Explanation of the example"
    }}
  ],
  "exercises": [
    {{
      "question": "Practice question",
      "hint": "Optional hint"
    }}
  ],
  "summary": "A concise summary of the key points covered"
}}

Rules:
1. Respond with ONLY the JSON object, with no text before or after it.
2. Make the content engaging, clear and focused on practical understanding.
3. Include worked examples; add code only where the subject calls for it.
4. title, content, objectives, examples, exercises and summary are all required."""

ANSWER_ANALYSIS_PROMPT = """As an expert tutor, analyze the student's answer to the question below.

Question: {question}

Student's answer: {answer}

Lesson context: {lesson_context}

Respond with ONLY a JSON object of this shape:
{{
  "isCorrect": true or false,
  "score": integer from 0 to 100,
  "feedback": "What was good and what could be improved",
  "suggestions": ["Specific suggestions for improvement"],
  "conceptsToReview": ["Concepts the student should review"]
}}

Be constructive and encouraging while giving specific, actionable feedback."""

TUTOR_SYSTEM_PROMPT = "You are a helpful AI tutor. Provide clear, accurate, and educational responses."

TOPIC_TUTOR_SYSTEM_PROMPT = (
    "You are a helpful AI tutor specializing in {topic}. "
    "Provide clear, accurate, and educational responses."
)


def format_documents(documents) -> str:
    """Render source documents as named sections."""
    return "\n\n".join(f"# Document: {doc.name}\n{doc.content}" for doc in documents)
