"""Assemble the ad-copy generation prompt from a Jinja2 template."""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence

from jinja2 import Template

from adcopy.config import GenerationConfig
from adcopy.industries import get_industry_profile

_PROMPT_PATH = Path(__file__).parent / "prompts" / "ad_copy_prompt.txt"

SYSTEM_PROMPT = "You are a helpful AI assistant for generating advertising content."


@dataclass(frozen=True)
class PromptVariables:
    client_context: str
    campaign_context: str
    ad_group_name: str
    keywords: str
    industry: Optional[str] = None
    target_persona: Optional[str] = None


@dataclass(frozen=True)
class PromptBuilderOptions:
    include_industry_specifics: bool = True
    include_persona_adaptation: bool = True
    enhanced_validation: bool = True
    strict_formatting: bool = True


@lru_cache(maxsize=1)
def _load_template() -> Template:
    return Template(
        _PROMPT_PATH.read_text(encoding="utf-8"),
        trim_blocks=True,
        lstrip_blocks=True,
    )


class PromptBuilder:
    """Render the generation prompt for one ad group.

    Output is deterministic for a given set of inputs. Unknown industries
    fall back to the ``default`` profile and never raise.
    """

    def __init__(self, gen_cfg: Optional[GenerationConfig] = None):
        self.gen_cfg = gen_cfg or GenerationConfig()

    def build(
        self,
        variables: PromptVariables,
        options: Optional[PromptBuilderOptions] = None,
        previous_errors: Sequence[str] = (),
    ) -> str:
        opts = options or PromptBuilderOptions()
        persona = variables.target_persona if opts.include_persona_adaptation else None

        rendered = _load_template().render(
            profile=get_industry_profile(variables.industry),
            client_context=variables.client_context,
            campaign_context=variables.campaign_context,
            ad_group_name=variables.ad_group_name,
            keywords=variables.keywords,
            target_persona=persona,
            num_titles=self.gen_cfg.required_titles,
            num_descriptions=self.gen_cfg.required_descriptions,
            max_title_chars=self.gen_cfg.max_title_chars,
            max_description_chars=self.gen_cfg.max_description_chars,
            include_industry_specifics=opts.include_industry_specifics,
            enhanced_validation=opts.enhanced_validation,
            strict_formatting=opts.strict_formatting,
            previous_errors=list(previous_errors)[:10],
        )
        # Skipped sections leave runs of blank lines behind.
        return re.sub(r"\n{3,}", "\n\n", rendered).strip()


def build_prompt(
    variables: PromptVariables,
    options: Optional[PromptBuilderOptions] = None,
    gen_cfg: Optional[GenerationConfig] = None,
) -> str:
    return PromptBuilder(gen_cfg).build(variables, options)


def build_messages(prompt: str) -> List[dict]:
    """Wrap a rendered prompt into the chat message list sent to providers."""
    return [
        {"role": "system", "content": SYSTEM_PROMPT},
        {"role": "user", "content": prompt},
    ]
