# Hackathon Judging Agent - Review Pipeline Package
#
# This package contains the staged review pipeline that judges a single
# hackathon project. Each stage is in its own file and receives an
# immutable RunState, returning an updated copy or a terminal verdict.
#
# The pipeline is orchestrated by review_pipeline_main.py. It reads the
# project's GitHub repository (GitHub REST API), asks Gemini for a code
# review and for prize eligibility verdicts, and writes every result back
# to the project store (Supabase).
#
# Stage flow:
#   1. Validate Repository -> 2. Hacking Timeline -> 3. Code Review
#   -> 4. Prize Category Review (once per batch of opted-in prizes)

__version__ = "0.1.0"
