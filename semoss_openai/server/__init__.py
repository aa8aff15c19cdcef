"""OpenAI-compatible HTTP front end for :class:`~semoss_openai.client.SemossOpenAI`."""
