"""
Article generation using LLMs (Claude or GPT).
Turns one news record into a short fan-blog article in Markdown.
"""
from datetime import date
from typing import Awaitable, Callable, Optional

import structlog
from anthropic import AsyncAnthropic
from openai import AsyncOpenAI
from tenacity import retry, stop_after_attempt, wait_exponential

from baystars_news.config import Settings, get_settings
from baystars_news.services.data_ingestion.base import CandidateRecord

logger = structlog.get_logger()

# record -> article body, or None when generation failed
ContentGenerator = Callable[[CandidateRecord], Awaitable[Optional[str]]]


class LLMContentGenerator:
    """
    Generates article bodies with whichever LLM has an API key configured.

    Anthropic is preferred over OpenAI when both keys are present. With
    neither, every call returns None and callers fall back to the template.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self._anthropic_client: Optional[AsyncAnthropic] = None
        self._openai_client: Optional[AsyncOpenAI] = None

        if self.settings.anthropic_api_key:
            self._anthropic_client = AsyncAnthropic(api_key=self.settings.anthropic_api_key)
        elif self.settings.openai_api_key:
            self._openai_client = AsyncOpenAI(api_key=self.settings.openai_api_key)

    @property
    def available(self) -> bool:
        return self._anthropic_client is not None or self._openai_client is not None

    async def __call__(self, record: CandidateRecord) -> Optional[str]:
        if not self.available:
            return None

        prompt = build_prompt(record, self.settings.subject)

        try:
            if self._anthropic_client:
                text = await self._generate_anthropic(prompt)
            else:
                text = await self._generate_openai(prompt)
        except Exception as e:
            logger.error("Article generation failed", title=record.title, error=str(e))
            return None

        return text.strip() or None

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10))
    async def _generate_anthropic(self, prompt: str) -> str:
        response = await self._anthropic_client.messages.create(
            model=self.settings.anthropic_model,
            max_tokens=self.settings.generation_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.content[0].text

    @retry(stop=stop_after_attempt(3), wait=wait_exponential(multiplier=1, min=2, max=10))
    async def _generate_openai(self, prompt: str) -> str:
        response = await self._openai_client.chat.completions.create(
            model=self.settings.openai_model,
            max_tokens=self.settings.generation_max_tokens,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""


def build_prompt(record: CandidateRecord, subject: str) -> str:
    """Build the article-writing prompt."""
    return f"""以下の{subject}関連のニュース情報をもとに、ブログ記事を作成してください。

ニュースタイトル: {record.title}
ニュースURL: {record.url}
ソース: {record.source}

要件:
1. 日本語で、親しみやすく、ファンが楽しめる内容にしてください
2. 記事の長さは300～500文字程度
3. {subject}ファンの視点で書いてください
4. 最後に「#{subject}」「#横浜DeNA」のハッシュタグを付けてください
5. Markdown形式で、見出しや強調を適切に使用してください

記事を作成してください:
"""


def template_article(record: CandidateRecord, subject: str, today: Optional[date] = None) -> str:
    """
    Fallback article used when no LLM output is available.
    Summarizes the record and links to the original.
    """
    today = today or date.today()

    return f"""## {record.title}

**ソース**: {record.source}
**日付**: {today.year}/{today.month}/{today.day}

### ニュース概要

このニュースは、{subject}に関する最新情報です。詳細については、以下のリンクをご確認ください。

[元の記事を読む]({record.url})

### {subject}ファンの視点

{subject}の活動に関する重要なニュースが報告されました。このような情報は、ファンにとって重要な関心事です。

チームの最新動向に注目しながら、今後の試合や選手の活躍を応援していきましょう。

#{subject} #横浜DeNA #プロ野球"""
