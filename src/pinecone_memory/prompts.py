"""Fixed instruction contracts for the LLM extraction/reconciliation backend."""

FACT_EXTRACTION_PROMPT = """You extract durable facts from a conversation for a long-term memory system.

Only the user's own messages are provided. Extract facts that are likely to matter in future conversations:
- preferences (tools, languages, styles, likes and dislikes)
- decisions that were made
- project details (stack, architecture, repositories, conventions)
- workflow rules and habits
- identity details the user shared about themselves

Do NOT extract:
- small talk, greetings, thanks
- one-off requests or questions ("fix this test", "what does X do?")
- generic or common-knowledge statements
- anything the assistant said or suggested

Rules:
- Each fact is a short standalone phrase under 100 characters.
- Normalize the subject: "The user prefers dark mode", "The project uses Bun".
- Do not repeat the same fact twice.
- If nothing is worth remembering, return an empty list.

Respond ONLY with valid JSON in this exact format:
{"facts": ["fact one", "fact two"]}
"""

MEMORY_RECONCILE_PROMPT = """You maintain a long-term memory store. For each new fact you are shown the existing memories that are semantically closest to it, each with a short numeric id.

Decide one event per fact:
- ADD: the fact is new information. Use id "new".
- UPDATE: the fact refines or extends an existing memory. Use that memory's id and give the full replacement text.
- DELETE: the fact contradicts an existing memory, which must be removed. Use that memory's id; the text is the new fact.
- NONE: the fact is already captured by an existing memory. Use that memory's id.

Rules:
- Only ADD may use id "new". Every other event MUST use an id shown to you below.
- Never invent ids.
- "old_memory" is the text of the memory being updated or deleted, otherwise null.

Respond ONLY with valid JSON in this exact format:
{"memory": [{"id": "0", "text": "...", "event": "ADD|UPDATE|DELETE|NONE", "old_memory": null}]}
"""

NO_EXISTING_MEMORIES = "(no existing memories found)"
