# backend/thinkandtalk/services/script_prompts.py

import math
import re
from dataclasses import dataclass
from typing import List, Optional

from thinkandtalk.models.teleprompter import EditorialParameters, FeedbackAnswer, NewsItem, ScriptRequest

# ---------------------------------------------
# READING PACE (teleprompter, professional presenter)
# ---------------------------------------------
WORDS_PER_MINUTE = 140
DEFAULT_MINUTES = 3
DEFAULT_WORDS = 420

# ---------------------------------------------
# PARAMETER → INSTRUCTION TEXT
# ---------------------------------------------
TONE_MAP = {
    "neutro": "neutro e objetivo, sem opiniões pessoais",
    "jornalistico": "jornalístico e formal, como um telejornal tradicional",
    "educativo": "educativo e didático, explicando conceitos de forma clara",
    "tecnico": "técnico e preciso, usando terminologia especializada quando apropriado",
    "humoristico": "leve e bem-humorado, mantendo a informação mas com toques de humor",
    "descontraido": "descontraído e informal, com linguagem leve e natural",
    "storytelling": "narrativo e envolvente, contando a história de forma cativante",
}

AUDIENCE_MAP = {
    "criancas": "crianças (linguagem simples, explicações básicas)",
    "adolescentes": "adolescentes (linguagem acessível e dinâmica)",
    "adultos": "adultos (linguagem madura e direta)",
    "publico_geral": "público geral (linguagem universal e acessível)",
    "especialistas": "especialistas na área (pode usar jargões e conceitos avançados)",
}

SCRIPT_TYPE_MAP = {
    "video_curto": "vídeo curto para redes sociais (dinâmico, direto ao ponto)",
    "video_longo": "vídeo longo para YouTube (mais detalhado, com desenvolvimento)",
    "telejornal": "telejornal (formal, pausas naturais, entonação jornalística)",
    "podcast": "podcast (conversacional, como se estivesse dialogando com o ouvinte)",
    "narracao_simples": "narração simples (leitura fluida e clara)",
}

PAUSE_MARKERS = "<pause-short>, <pause-medium>, <pause-long>, <topic-change>"

OUTPUT_FORMAT = """FORMATO DE SAÍDA (JSON):
{
  "script": "...",
  "questions": ["Pergunta 1", "Pergunta 2", "Pergunta 3"]
}"""


@dataclass
class WordTarget:
    minutes: int
    words: int

    # ±10%, in integer math (700 * 1.1 is 770.0000000000001)
    @property
    def min_words(self) -> int:
        return self.words * 9 // 10

    @property
    def max_words(self) -> int:
        return -(-self.words * 11 // 10)


@dataclass
class Prompt:
    system: str
    user: str


def parse_leading_int(value: str) -> Optional[int]:
    match = re.match(r"\s*([+-]?\d+)", value or "")
    return int(match.group(1)) if match else None


def word_target(parameters: EditorialParameters) -> WordTarget:
    amount = parse_leading_int(parameters.duration)
    if amount is not None and amount <= 0:
        amount = None

    if parameters.durationUnit == "words":
        words = amount or DEFAULT_WORDS
        return WordTarget(minutes=math.ceil(words / WORDS_PER_MINUTE), words=words)

    minutes = amount or DEFAULT_MINUTES
    return WordTarget(minutes=minutes, words=minutes * WORDS_PER_MINUTE)


def gender_line(parameters: EditorialParameters) -> str:
    split = parameters.audienceGenderSplit
    return f"{split}% masculino / {100 - split}% feminino"


def news_context(news_items: List[NewsItem]) -> str:
    if not news_items:
        return "Nenhuma notícia selecionada."

    blocks = []
    for index, news in enumerate(news_items):
        block = f"### Notícia {index + 1}\n**Título:** {news.title}\n"
        if news.summary:
            block += f"**Resumo:** {news.summary}\n"
        if news.content:
            block += f"**Conteúdo:** {news.content}\n"
        blocks.append(block)
    return "\n\n".join(blocks)


def main_topic(request: ScriptRequest) -> str:
    if request.complementary_prompt and request.complementary_prompt.strip():
        return request.complementary_prompt.strip()
    if request.news_items:
        return "Notícias sobre: " + ", ".join(n.title for n in request.news_items)
    return "Tema livre"


def cta_line(parameters: EditorialParameters) -> str:
    if parameters.includeCta and parameters.ctaText:
        return f"CTA: {parameters.ctaText}"
    return ""


# ---------------------------------------------
# REFINEMENT (single call)
# ---------------------------------------------
def refinement_prompt(request: ScriptRequest) -> Prompt:
    p = request.parameters
    system = f"""Você é um editor profissional especializado em refinar roteiros para leitura em voz alta.

TAREFA: Modificar o roteiro existente conforme as instruções do usuário.

REGRAS ABSOLUTAS PARA REFINAMENTO:
0. Retorne um JSON válido com as chaves "script" e "questions"
1. O roteiro refinado DEVE ser baseado no texto original fornecido
2. Mantenha a MAIOR PARTE do texto original, fazendo APENAS as alterações solicitadas
3. Preserve a estrutura geral, a ordem dos tópicos e as marcações de pausa existentes
4. NÃO adicione informações que não estejam no texto original ou nas notícias
5. Retorne o roteiro COMPLETO com as edições aplicadas
6. Mantenha as marcações de pausa: {PAUSE_MARKERS}
7. O idioma do roteiro deve ser mantido: {p.language}
8. Gere exatamente 3 perguntas sobre a opinião pessoal do usuário sobre o texto

{OUTPUT_FORMAT}"""

    user = f"""ROTEIRO ATUAL (você DEVE partir deste texto):
---
{request.base_script}
---

PERFIL DO PÚBLICO:
- Faixa etária: {p.audienceAgeMin}-{p.audienceAgeMax} anos
- Distribuição de sexo: {gender_line(p)}

INSTRUÇÕES DE MODIFICAÇÃO DO USUÁRIO:
{request.refinement_prompt}

CONTEXTO DAS NOTÍCIAS ORIGINAIS (apenas para referência):
{news_context(request.news_items)}

Aplique as modificações solicitadas ao roteiro acima e retorne o roteiro completo refinado. Retorne apenas o JSON solicitado."""

    if request.complementary_prompt and request.complementary_prompt.strip():
        user += (
            "\n\nPrompt complementar do usuário (aplicar obrigatoriamente):\n"
            f"{request.complementary_prompt.strip()}\n"
        )

    return Prompt(system=system, user=user)


# ---------------------------------------------
# PHASE 1: PROMPT ENGINEER
# ---------------------------------------------
def prompt_engineer_prompt(request: ScriptRequest) -> Prompt:
    p = request.parameters
    target = word_target(p)
    unit_label = "MINUTOS" if p.durationUnit == "minutes" else "PALAVRAS"

    system = """Você é um ENGENHEIRO DE PROMPTS especializado em criar instruções precisas para geração de roteiros de vídeo/áudio.

SEU OBJETIVO: Criar um prompt detalhado e otimizado que será usado por um editor especializado para gerar o roteiro final.

VOCÊ DEVE:
1. Analisar todas as configurações fornecidas
2. Analisar as notícias/tema disponíveis
3. Criar um prompt ÚNICO e COMPLETO com todas as instruções necessárias
4. O prompt deve ser autocontido: o editor não terá acesso às configurações originais
5. ENFATIZAR A DURAÇÃO DO ROTEIRO, o requisito mais crítico

FORMATO DE SAÍDA (retorne APENAS o prompt, sem explicações):
Um texto detalhado com todas as instruções para o editor criar o roteiro."""

    if request.news_items:
        news_block = f"NOTÍCIAS DISPONÍVEIS PARA CONTEXTO:\n{news_context(request.news_items)}"
    else:
        news_block = "NOTA: Não há notícias selecionadas. O roteiro deve ser baseado apenas no assunto principal informado."

    extra = f"INSTRUÇÕES ADICIONAIS DO USUÁRIO: {request.complementary_prompt}" if request.complementary_prompt else ""

    user = f"""CONFIGURAÇÕES DO ROTEIRO:

ASSUNTO PRINCIPAL: {main_topic(request)}

TOM E ESTILO: {TONE_MAP.get(p.tone, p.tone)}
PÚBLICO-ALVO: {AUDIENCE_MAP.get(p.audience, p.audience)}
FAIXA ETÁRIA DO PÚBLICO: {p.audienceAgeMin}-{p.audienceAgeMax} anos
DISTRIBUIÇÃO DE SEXO: {gender_line(p)}
IDIOMA: {p.language}

REQUISITO CRÍTICO - DURAÇÃO DO ROTEIRO:
- DURAÇÃO SOLICITADA: {p.duration} {unit_label}
- CONTAGEM DE PALAVRAS OBRIGATÓRIA: entre {target.min_words} e {target.max_words} palavras
- Taxa de leitura: {WORDS_PER_MINUTE} palavras por minuto
- Tempo estimado: {target.minutes} minutos

TIPO DE ROTEIRO: {SCRIPT_TYPE_MAP.get(p.scriptType, p.scriptType)}
{cta_line(p)}

{news_block}

{extra}

Crie um prompt detalhado e otimizado para um editor especializado gerar o roteiro. O prompt DEVE incluir:

1. INSTRUÇÃO OBRIGATÓRIA DE EXTENSÃO: o roteiro DEVE ter entre {target.min_words} e {target.max_words} palavras (para {target.minutes} minutos de leitura)
2. Instruções claras sobre tom, estilo e linguagem
3. Estrutura detalhada para o roteiro:
   - Abertura: ~{math.floor(target.words * 0.1)} palavras
   - Desenvolvimento: ~{math.floor(target.words * 0.75)} palavras (dividido em pontos principais)
   - Fechamento/CTA: ~{math.floor(target.words * 0.15)} palavras
4. Como usar as notícias (se houver) ou desenvolver o tema
5. Regras de formatação (pausas, marcações)
6. CTA se aplicável

O prompt que você criar DEVE enfatizar que o editor precisa escrever um texto LONGO o suficiente para {target.minutes} minutos de leitura."""

    return Prompt(system=system, user=user)


# ---------------------------------------------
# PHASE 2: SPECIALIST EDITOR
# ---------------------------------------------
def editor_prompt(request: ScriptRequest, generated_prompt: str) -> Prompt:
    target = word_target(request.parameters)

    if request.complementary_prompt:
        specialty = f'especializado no tema "{request.complementary_prompt[:100]}"'
    elif request.news_items:
        specialty = "especializado em jornalismo e análise de notícias"
    else:
        specialty = "versátil e adaptável a diferentes temas"

    system = f"""Você é um EDITOR PROFISSIONAL {specialty}, especialista em criar roteiros para leitura em voz alta.

REQUISITO CRÍTICO DE EXTENSÃO:
O roteiro DEVE ter entre {target.min_words} e {target.max_words} palavras.
Isso equivale a {target.minutes} minutos de leitura ({WORDS_PER_MINUTE} palavras/minuto).
SE O ROTEIRO TIVER MENOS QUE {target.min_words} PALAVRAS, VOCÊ FALHOU NA TAREFA.

REGRAS ABSOLUTAS:
1. Retorne um JSON válido com as chaves "script" e "questions"
2. O texto DEVE ter entre {target.min_words} e {target.max_words} palavras
3. O texto deve ser escrito como será LIDO EM VOZ ALTA (teleprompter)
4. NÃO invente fatos: use apenas as informações fornecidas
5. Desenvolva cada ponto com profundidade
6. Insira marcações de pausa:
   - <pause-short> para pausas breves (1-2 segundos)
   - <pause-medium> para pausas médias (3-4 segundos)
   - <pause-long> para pausas longas (5-6 segundos)
   - <topic-change> para mudança de assunto
7. Gere exatamente 3 perguntas sobre a opinião pessoal do usuário sobre o texto

{OUTPUT_FORMAT}"""

    news_block = ""
    if request.news_items:
        news_block = f"NOTÍCIAS PARA REFERÊNCIA:\n{news_context(request.news_items)}"

    user = f"""{generated_prompt}

{news_block}

LEMBRETE FINAL: O roteiro DEVE ter entre {target.min_words} e {target.max_words} palavras.

Retorne APENAS o JSON solicitado."""

    return Prompt(system=system, user=user)


def append_feedback(user_prompt: str, feedback: Optional[List[FeedbackAnswer]]) -> str:
    if not feedback:
        return user_prompt

    lines = [
        f"{i + 1}) Q: {item.question}\nA: {item.answer}"
        for i, item in enumerate(f for f in feedback if f.question and f.answer)
    ]
    if not lines:
        return user_prompt

    return (
        f"{user_prompt}\n\nRespostas do usuário sobre o texto:\n"
        + "\n".join(lines)
        + "\n\nConsidere essas respostas ao ajustar o roteiro."
    )
