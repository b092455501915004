from dotenv import load_dotenv

from piiscrubber import AuditRecorder, PIIScrubber, list_models


load_dotenv()

TRANSCRIPT = """Coach: Welcome back, Sarah. How did the conversation with your manager go?

Sarah Johnson: Better than expected. I'm still at Google for now, and my therapist
says the anxiety is improving. You can text me at 555-123-4567 or mail
sarah.j@example.com if Thursday moves.

Coach: Great. Let's revisit your DISC profile (D:80 I:60 S:40 C:50) next week.
"""


# List available models
print("Available models:", list(list_models().keys()))

# Default model (gpt-4o-mini), needs OPENAI_API_KEY
scrubber = PIIScrubber(model="gpt-4o-mini")

result = scrubber.scrub(TRANSCRIPT, "transcript")

print(result.content)
print(AuditRecorder.format(result.audit))

# Alternative: patterns only, no API key needed
# result = PIIScrubber(enable_llm=False).scrub(TRANSCRIPT, "transcript")

# Alternative: use local Ollama (free)
# scrubber = PIIScrubber(model="llama3.2", max_concurrent_chunks=2)
# print(scrubber.scrub(TRANSCRIPT, "transcript").to_dict())
