"""Model-based grader: builds the grading prompt and extracts the score."""

import logging
from typing import Optional

from .gateway import ModelGateway
from .models import GradingResult, Task
from .notebook import FlattenedSubmission, flatten_notebook
from .score_extractor import extract_score

LOG = logging.getLogger(__name__)


def build_system_prompt(max_score: int) -> str:
    """System instruction; the feedback must open with the score line."""
    return f"""You are an expert automated grading engine for an LMS (Learning Management System).
You grade student submissions with precision, consistency, and objectivity.
All feedback MUST be in Azerbaijani (Azərbaycan dili).

GRADING RULES:
1. Evaluate based on: Correctness (max 85pts), Completeness (max 10pts), Clarity (max 5pts)
2. Total per-task score is capped at 100
3. Final score = rounded mean of all task scores, capped at max_score ({max_score})
4. Be fair but strict — reward good work, penalize errors proportionally
5. Always provide specific, actionable feedback

CODE WITHOUT OUTPUT (NOT RUN CELLS):
- If notebook cells are NOT RUN, still evaluate the code by reading and analyzing its logic
- A cell not being run is NOT a penalty by itself; only penalize actual errors in the code
- If code would raise an exception when run (e.g., ZeroDivisionError, NameError), note it as an error

FEEDBACK FORMAT (Markdown):
**Yekun bal: {{score}}/{max_score}**

### Qiymətləndirmə

**Ümumi:**
{{2-3 sentence summary in Azerbaijani}}

**Güclü tərəflər:**
- {{strength}}

**Zəif tərəflər və tövsiyələr:**
- {{issue with specific recommendation}}

### Tapşırıq analizi
- **Correctness**: X/85
- **Completeness**: Y/10
- **Clarity**: Z/5
- **Bal**: T/100

### Yekun tövsiyələr
1. {{Most important improvement}}
2. {{Second improvement}}
3. {{Third improvement}}

CRITICAL: The FIRST line of your response MUST be exactly: **Yekun bal: {{number}}/{max_score}**
The score must be a realistic integer between 0 and {max_score}."""


def build_user_prompt(flattened: FlattenedSubmission,
                      student_name: str,
                      task: Task,
                      char_limit: int) -> str:
    """User message with task context and the (truncated) submission text."""
    run, total = flattened.run_code_cells, flattened.total_code_cells
    if flattened.has_unrun_cells:
        execution_status = f"{run}/{total} code cells run — evaluate unrun cells by reading code logic"
        execution_note = (
            f"\n\n⚠️ QEYD: Bu notebookda {total} kod hüceyrəsindən {total - run} tanəsi "
            "RUN EDİLMƏYİB. Kodun yazılışını, məntiqini və düzgünlüyünü təhlil edərək qiymətləndir. "
            "Run olunmamaq özlüyündə cəza səbəbi DEYİL."
        )
    else:
        execution_status = f"{run}/{total} code cells run"
        execution_note = ""

    return f"""Grade this student submission:

**Student**: {student_name}
**Task**: {task.title}
**Instructions**: {task.instructions}
**Max Score**: {task.max_score}
**Execution Status**: {execution_status}{execution_note}

**Submission Content**:
{flattened.text[:char_limit]}"""


class SubmissionGrader:
    """Grade one submission's text with the model gateway."""

    def __init__(self, gateway: ModelGateway, prompt_char_limit: int = 15_000):
        self.gateway = gateway
        self.prompt_char_limit = prompt_char_limit

    async def grade_async(self,
                          submission_text: str,
                          student_name: str,
                          task: Task,
                          *,
                          model: Optional[str] = None) -> GradingResult:
        """
        Grade a submission asynchronously.

        Args:
            submission_text: Raw content (notebook JSON or plain text)
            student_name: Display name used in the prompt
            task: Task metadata (title, instructions, max score)
            model: Optional per-call model override

        Returns:
            GradingResult; ``score`` is None when the response had no score marker

        Raises:
            GatewayError: If the model call fails
        """
        flattened = flatten_notebook(submission_text)
        completion = await self.gateway.complete(
            build_system_prompt(task.max_score),
            build_user_prompt(flattened, student_name, task, self.prompt_char_limit),
            model=model,
        )
        score = extract_score(completion.text, task.max_score)
        if score is None:
            LOG.warning(f"No score found in model response for {student_name}: {completion.text[:200]!r}")

        return GradingResult(
            feedback=completion.text,
            score=score,
            model=completion.model,
            tokens_used=completion.total_tokens,
            total_code_cells=flattened.total_code_cells,
            run_code_cells=flattened.run_code_cells,
        )
