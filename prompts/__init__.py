# Prompts module initialization

# Refinement Prompts
from .refinement_prompts import (
    RefinementPrompt,
    build_refinement_prompts,
    build_trends_prompt,
    build_research_prompt,
    build_creative_prompt,
    stage_label,
)

# Authoring Prompts
from .generation_prompts import (
    build_generation_prompts,
    build_brainstorm_prompts,
    build_editor_prompts,
    build_summary_prompt,
    build_recommendations_prompt,
)

__all__ = [
    'RefinementPrompt',
    'build_refinement_prompts',
    'build_trends_prompt',
    'build_research_prompt',
    'build_creative_prompt',
    'stage_label',
    'build_generation_prompts',
    'build_brainstorm_prompts',
    'build_editor_prompts',
    'build_summary_prompt',
    'build_recommendations_prompt',
]
