"""Default values shared by the configuration schema and the agent client."""

DEFAULT_ENDPOINT = "http://localhost:8080"

DEFAULT_PROMPT_TEMPLATE = """
You are a helpful assistant that generates conventional commit messages based on code changes.
Given a Git diff, please generate a concise and descriptive commit message following these conventions:

1. Use the format: <type>(<scope>): <description>
2. Types include: feat, fix, docs, style, refactor, perf, test, build, ci, chore
3. Scope must be short (1-2 words), concise, and represent the specific component affected
4. The description should be a concise, imperative present tense summary of the changes
5. Your response must ONLY contain the commit message string, with no other text,
   explanation, or surrounding characters (like quotes or markdown).

Analyze the following diff and respond with ONLY the commit message string:

{diff}
"""

DEFAULT_RESPONSE_MATCHER = r"((?:feat|fix|docs|style|refactor|perf|test|build|ci|chore)(?:\([^)\n]*\))?!?:[^\n]+)"
