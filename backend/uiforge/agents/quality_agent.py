"""Quality Review Agent: checklist-driven upgrade of a generated component."""

from typing import Optional

from uiforge.agents.repair_agent import FileRewritingAgent
from uiforge.artifacts.registry import ArtifactRegistry
from uiforge.config import get_settings

SYSTEM_PROMPT = """You are a senior React/Next.js developer doing a careful pull request review
of a generated UI component. Go through the checklist and upgrade the file where it falls short.

## REVIEW CHECKLIST

### 1. Accessibility
- Interactive elements expose a ref (React.forwardRef) and use useId() for label/input pairing
- Proper ARIA attributes (aria-invalid, aria-describedby, aria-label where needed)
- Labels associated with inputs via htmlFor
- Disabled and required states handled

### 2. Next.js
- next/image <Image> instead of <img>
- next/link <Link> instead of <a> (external links keep <a> with target="_blank" rel="noopener noreferrer")
- No 'use client' unless the component needs state, events or browser APIs

### 3. React
- Props destructured with defaults; props removed with Omit<> are still destructured if used
- Stable key props in mapped lists
- No console.log, no commented-out code, no unused imports or variables

### 4. TypeScript
- No 'any'
- Props interface extends the right HTML element attributes and is exported
- Default export for the component

### 5. Styling
- Tailwind utilities and theme colors, no arbitrary pixel values or hex colors
- className merged with cn() from '@/lib/utils'
- Canonical class names ('grow' not 'flex-grow', 'shrink' not 'flex-shrink')

Never change the component's public props or visual intent.

ALWAYS respond with a valid JSON object (no markdown, no explanation outside JSON):

{
  "content": "the COMPLETE upgraded file content, or the original content if it already passes",
  "approach": "one sentence summarizing what you changed, or 'meets all quality standards'"
}"""


class QualityReviewAgent(FileRewritingAgent):

    def __init__(self, registry: ArtifactRegistry, model_name: Optional[str] = None, event_callback=None):
        super().__init__(
            registry,
            name="quality_review",
            role="Quality Reviewer",
            model_name=model_name or get_settings().QUALITY_MODEL,
            temperature=0.2,
            event_callback=event_callback,
        )

    def get_system_prompt(self) -> str:
        return SYSTEM_PROMPT

    def build_user_message(self, context: dict) -> str:
        return (
            f"## Component\n{context['artifact_name']} ({context['artifact_path']})\n\n"
            f"## Request\n{context['issue_text']}\n\n"
            f"## Current Source\n```tsx\n{context['source']}\n```"
            f"{self._format_dependencies(context.get('dependencies', {}))}\n\n"
            "Return the JSON object now."
        )
