"""Approach text to typed draft steps and inferred dependency edges.

Type inference is a fixed, ordered keyword table. Every step type is scored
independently by counting whole-word hits, inflections included (multi-word
phrases count once per word, so "write code" outweighs a bare "write"). CJK
keywords match as substrings. The highest score wins and ties go to the type
listed first in ``KEYWORD_TABLE``. With no hit at all the step becomes a tool
invocation when the clause opens with an imperative verb, and code generation
otherwise.
"""

from __future__ import annotations

import hashlib
import logging
import re
from dataclasses import dataclass, field

from core.policy_runtime import PlannerSettings
from planner.step_model import Dependency, DependencyKind, Step, StepType
from planner.task_decomposer import SegmentStrategy, TaskDecomposer, clean_clause

logger = logging.getLogger("ap.planner.parser")

PARSE_DEGRADED = "ParseDegraded: no structure found in approach text; produced a single catch-all step"

KEYWORD_TABLE: list[tuple[StepType, tuple[str, ...]]] = [
    (
        StepType.FILE_OPERATION,
        ("create", "write", "read", "delete", "file", "copy", "move", "rename", "directory", "folder",
         "创建", "写入", "读取", "删除", "移除", "修改", "更新", "编辑", "复制", "移动", "文件", "目录"),
    ),
    (
        StepType.COMMAND_EXECUTION,
        ("run", "execute", "command", "shell", "script", "build", "compile", "deploy",
         "运行", "执行", "调用", "命令", "脚本", "编译", "构建", "部署", "发布"),
    ),
    (
        StepType.CODE_GENERATION,
        ("implement", "generate", "write code", "code", "refactor", "function", "实现", "生成", "代码", "重构", "函数"),
    ),
    (StepType.TEST_EXECUTION, ("test", "verify", "assert", "validate", "check", "测试", "验证", "检查")),
    (StepType.SYSTEM_CONFIGURATION, ("configure", "set up", "setup", "install", "enable", "配置", "设置", "安装")),
    (
        StepType.DATA_ANALYSIS,
        ("analyze", "analyse", "compute", "aggregate", "calculate", "statistics", "分析", "统计", "计算"),
    ),
    (StepType.MANUAL_CONFIRMATION, ("confirm", "approve", "review", "clarify", "sign off", "确认", "审批", "审核", "澄清")),
]

IMPERATIVE_VERBS = frozenset(
    {
        "add", "apply", "ask", "call", "clean", "collect", "do", "download", "fetch", "find",
        "get", "invoke", "launch", "list", "load", "make", "open", "perform", "prepare",
        "query", "search", "send", "start", "stop", "update", "upload", "use",
    }
)

# Ordered; the first language mentioned in this order wins.
LANGUAGE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    ("python", re.compile(r"\bpython\b|\.py\b", re.IGNORECASE)),
    ("typescript", re.compile(r"\btypescript\b|\.ts\b", re.IGNORECASE)),
    ("javascript", re.compile(r"\bjavascript\b|\bnode(?:\.js)?\b|\.js\b", re.IGNORECASE)),
    ("rust", re.compile(r"\brust\b|\bcargo\b|\.rs\b", re.IGNORECASE)),
    ("java", re.compile(r"\bjava\b|\bmaven\b|\bgradle\b|\.java\b", re.IGNORECASE)),
    ("go", re.compile(r"\bgolang\b|\.go\b", re.IGNORECASE)),
]

FILE_OPERATIONS: list[tuple[str, tuple[str, ...]]] = [
    ("create", ("create", "generate", "write", "创建", "生成", "写入")),
    ("read", ("read", "load", "open", "读取")),
    ("update", ("update", "modify", "edit", "append", "修改", "更新", "编辑")),
    ("delete", ("delete", "remove", "删除", "移除")),
    ("copy", ("copy", "复制")),
    ("move", ("move", "rename", "移动")),
    ("search", ("search", "find", "搜索", "查找")),
    ("replace", ("replace", "替换")),
]

COMMAND_VERBS: list[tuple[str, tuple[str, ...]]] = [
    ("build", ("build", "compile", "编译", "构建")),
    ("test", ("test", "测试")),
    ("run", ("run", "运行", "执行")),
    ("deploy", ("deploy", "publish", "部署", "发布")),
]

ROLLBACK_ACTIONS: dict[tuple[StepType, str | None], list[str]] = {
    (StepType.FILE_OPERATION, "create"): ["Delete the created file"],
    (StepType.FILE_OPERATION, "update"): ["Restore the original file contents"],
    (StepType.FILE_OPERATION, "replace"): ["Restore the original file contents"],
    (StepType.FILE_OPERATION, "delete"): ["Restore the deleted file from backup"],
    (StepType.FILE_OPERATION, "move"): ["Move the file back to its original location"],
    (StepType.FILE_OPERATION, "copy"): ["Remove the copied file"],
    (StepType.COMMAND_EXECUTION, "deploy"): ["Roll back the deployment"],
    (StepType.CODE_GENERATION, None): ["Discard the generated code"],
    (StepType.SYSTEM_CONFIGURATION, None): ["Revert the configuration changes"],
}

_DEPENDENCY_PHRASE = re.compile(
    r"\b(using the (?:result|results|output|outputs) of|depends on|based on|after|once)\b([^,;.]*)",
    re.IGNORECASE,
)
_CRITERION_PHRASE = re.compile(r"\b(?:verify|verifies|ensure|ensures|should|make sure)\b[^,;.]*", re.IGNORECASE)
_WORD = re.compile(r"[a-z0-9_]+")
_STOPWORDS = frozenset(
    {
        "the", "and", "for", "with", "that", "this", "then", "from", "into", "its", "are",
        "has", "have", "been", "was", "were", "all", "any", "step", "steps", "previous",
        "result", "results", "output", "outputs", "using", "after", "once", "depends",
        "based", "done", "finished", "completed", "complete",
    }
)


@dataclass
class ParseResult:
    """Draft steps and inferred edges from one approach text."""

    steps: list[Step] = field(default_factory=list)
    dependencies: list[Dependency] = field(default_factory=list)
    degraded: bool = False
    strategy: str = SegmentStrategy.WHOLE.value
    warnings: list[str] = field(default_factory=list)


def normalize_clause(text: str) -> str:
    return re.sub(r"\s+", " ", clean_clause(text)).lower()


def make_step_id(index: int, text: str) -> str:
    """Content-addressed id: same position and text give the same id."""
    digest = hashlib.sha256(f"{index}:{normalize_clause(text)}".encode("utf-8")).hexdigest()
    return f"step_{digest[:12]}"


def _inflections(word: str) -> str:
    """Regex for a keyword's last word plus its plural, past and -ing forms."""
    if word.endswith("e"):
        return re.escape(word[:-1]) + r"(?:e|es|ed|ing)"
    if word.endswith("y") and len(word) > 1 and word[-2] not in "aeiou":
        return re.escape(word[:-1]) + r"(?:y|ies|ied|ying)"
    return re.escape(word) + r"(?:s|es|ed|ing)?"


def _keyword_pattern(keyword: str) -> re.Pattern[str]:
    # CJK text has no word boundaries; those keywords match as substrings.
    if not keyword.isascii():
        return re.compile(re.escape(keyword))
    words = keyword.split()
    body = [re.escape(word) for word in words[:-1]] + [_inflections(words[-1])]
    return re.compile(r"\b" + r"\s+".join(body) + r"\b", re.IGNORECASE)


_KEYWORD_PATTERNS: list[tuple[StepType, list[tuple[re.Pattern[str], int]]]] = [
    (step_type, [(_keyword_pattern(keyword), len(keyword.split())) for keyword in keywords])
    for step_type, keywords in KEYWORD_TABLE
]


def _stem(word: str) -> str:
    for suffix in ("ing", "ed", "es", "s", "e"):
        if word.endswith(suffix) and len(word) - len(suffix) >= 3:
            return word[: -len(suffix)]
    return word


def _content_words(text: str) -> set[str]:
    return {_stem(word) for word in _WORD.findall(text.lower()) if len(word) >= 3 and word not in _STOPWORDS}


def _first_match(text: str, table: list[tuple[str, tuple[str, ...]]]) -> str | None:
    for label, words in table:
        if any(_keyword_pattern(word).search(text) for word in words):
            return label
    return None


def score_step_types(clause: str) -> dict[StepType, int]:
    """Keyword hit score per step type, in table order."""
    scores: dict[StepType, int] = {}
    for step_type, patterns in _KEYWORD_PATTERNS:
        scores[step_type] = sum(weight * len(pattern.findall(clause)) for pattern, weight in patterns)
    if detect_language(clause):
        scores[StepType.CODE_GENERATION] += 1
    return scores


def detect_language(clause: str) -> str | None:
    for language, pattern in LANGUAGE_PATTERNS:
        if pattern.search(clause):
            return language
    return None


def infer_step_type(clause: str) -> StepType:
    """Pick the best-scoring type; ties go to the earlier table entry."""
    scores = score_step_types(clause)
    best_type, best_score = None, 0
    for step_type, _ in KEYWORD_TABLE:
        if scores[step_type] > best_score:
            best_type, best_score = step_type, scores[step_type]
    if best_type is not None:
        return best_type
    words = _WORD.findall(clause.lower())
    if words and words[0] in IMPERATIVE_VERBS:
        return StepType.TOOL_INVOCATION
    return StepType.CODE_GENERATION


class PlanParser:
    """Turns approach text into draft steps plus inferred edges."""

    def __init__(self, settings: PlannerSettings | None = None) -> None:
        self.settings = settings or PlannerSettings()
        self.decomposer = TaskDecomposer(max_clauses=self.settings.max_steps)

    def parse(self, text: str, complexity: str | None = None) -> ParseResult:
        """Segment and type an approach text. Never raises."""
        segmentation = self.decomposer.decompose(text)
        result = self.parse_segments(segmentation.clauses, complexity=complexity)
        result.strategy = segmentation.strategy.value
        if segmentation.degraded:
            result.degraded = True
            result.warnings.append(PARSE_DEGRADED)
        logger.info(
            "Parsed approach into %d step(s) using %s segmentation",
            len(result.steps),
            result.strategy,
        )
        return result

    def parse_segments(self, clauses: list[str], complexity: str | None = None) -> ParseResult:
        """Build steps from already segmented clauses."""
        clauses = [clause for clause in (clean_clause(c) for c in clauses) if clause]
        steps = [self.draft_step(index, clause, complexity) for index, clause in enumerate(clauses)]
        dependencies: list[Dependency] = []
        for index in range(1, len(steps)):
            edge = self._explicit_dependency(steps, index)
            if edge is None and self.settings.sequential_edges:
                edge = Dependency(
                    from_id=steps[index - 1].id,
                    to_id=steps[index].id,
                    kind=DependencyKind.WEAK,
                )
            if edge is not None:
                dependencies.append(edge)
        return ParseResult(steps=steps, dependencies=dependencies, strategy="supplied")

    def draft_step(self, index: int, clause: str, complexity: str | None = None) -> Step:
        step_type = infer_step_type(clause)
        operation = self._operation(step_type, clause)
        return Step(
            id=make_step_id(index, clause),
            name=self._name(clause),
            description=clause,
            step_type=step_type,
            language=detect_language(clause) if step_type is StepType.CODE_GENERATION else None,
            operation=operation,
            estimated_duration=self.estimate_duration(step_type, clause, complexity),
            expected_outputs=self._expected_outputs(clause, step_type, operation),
            validation_criteria=self._validation_criteria(clause, step_type, operation),
            rollback_actions=self._rollback_actions(step_type, operation),
        )

    def complete_steps(self, steps: list[Step], complexity: str | None = None) -> list[Step]:
        """Fill heuristic defaults on caller-built steps.

        Fields the caller set explicitly are kept; the step type is inferred
        from the description (or name) only when it was left out.
        """
        completed: list[Step] = []
        for step in steps:
            updates: dict[str, object] = {}
            text = step.description or step.name
            step_type = step.step_type
            if "step_type" not in step.model_fields_set:
                step_type = infer_step_type(text)
                updates["step_type"] = step_type
            operation = step.operation
            if operation is None:
                operation = self._operation(step_type, text)
                if operation is not None:
                    updates["operation"] = operation
            if "rollback_actions" not in step.model_fields_set:
                rollback = self._rollback_actions(step_type, operation)
                if rollback:
                    updates["rollback_actions"] = rollback
            if step.estimated_duration is None:
                updates["estimated_duration"] = self.estimate_duration(step_type, text, complexity)
            if step_type is StepType.CODE_GENERATION and step.language is None:
                updates["language"] = detect_language(text)
            completed.append(step.model_copy(update=updates) if updates else step)
        return completed

    def estimate_duration(self, step_type: StepType, clause: str, complexity: str | None = None) -> int:
        """Heuristic minutes: base by type scaled by length and complexity words."""
        factor = 1.0
        word_count = len(clause.split())
        if word_count > 15:
            factor += 0.5
        if word_count > 30:
            factor += 0.5
        lowered = clause.lower()
        for keyword in self.settings.complexity_keywords:
            if _keyword_pattern(keyword).search(lowered):
                factor += 0.5
        factor = min(factor, 3.0)
        multiplier = self.settings.complexity_multipliers.get((complexity or "").lower(), 1.0)
        return max(1, round(self.settings.base_duration(step_type) * factor * multiplier))

    @staticmethod
    def _name(clause: str) -> str:
        name = clause[:1].upper() + clause[1:]
        return name if len(name) <= 60 else name[:57].rstrip() + "..."

    @staticmethod
    def _operation(step_type: StepType, clause: str) -> str | None:
        if step_type is StepType.FILE_OPERATION:
            return _first_match(clause, FILE_OPERATIONS) or "update"
        if step_type is StepType.COMMAND_EXECUTION:
            return _first_match(clause, COMMAND_VERBS) or "execute"
        return None

    @staticmethod
    def _rollback_actions(step_type: StepType, operation: str | None) -> list[str]:
        return list(ROLLBACK_ACTIONS.get((step_type, operation)) or ROLLBACK_ACTIONS.get((step_type, None), []))

    @staticmethod
    def _expected_outputs(clause: str, step_type: StepType, operation: str | None) -> list[str]:
        lowered = clause.lower()
        outputs: list[str] = []
        if re.search(r"\b(generat|creat)\w*|生成|创建", lowered):
            outputs.append("Generated artifact")
        if "report" in lowered or "报告" in clause:
            outputs.append("Analysis report")
        if step_type is StepType.FILE_OPERATION and operation in {"create", "update", "replace", "copy", "move"}:
            outputs.append("Output file")
        if re.search(r"\b(result|results|output)\b|结果", lowered):
            outputs.append("Processing result")
        return outputs

    @staticmethod
    def _validation_criteria(clause: str, step_type: StepType, operation: str | None) -> list[str]:
        criteria = [match.group(0).strip() for match in _CRITERION_PHRASE.finditer(clause)]
        lowered = clause.lower()
        if step_type is StepType.TEST_EXECUTION or operation == "test":
            criteria.append("All tests pass")
        if operation == "build" or re.search(r"\b(build|compile)\b|编译|构建", lowered):
            criteria.append("Build successful")
        if operation == "deploy":
            criteria.append("Deployment successful")
        return list(dict.fromkeys(criteria))

    @staticmethod
    def _explicit_dependency(steps: list[Step], index: int) -> Dependency | None:
        """Weak edge to the earlier step a dependency phrase refers to."""
        clause = steps[index].description
        for match in _DEPENDENCY_PHRASE.finditer(clause):
            reference = _content_words(match.group(2))
            if not reference:
                continue
            best_index, best_overlap = None, 0
            for earlier in range(index):
                overlap = len(reference & _content_words(steps[earlier].description))
                # ">=" prefers the most recent step on ties.
                if overlap and overlap >= best_overlap:
                    best_index, best_overlap = earlier, overlap
            if best_index is None:
                continue
            target = steps[best_index]
            steps[index].preconditions.append(f"{match.group(1).lower()} step {best_index + 1}: {target.name}")
            logger.debug("Step %s refers back to %s via '%s'", steps[index].id, target.id, match.group(1))
            return Dependency(from_id=target.id, to_id=steps[index].id, kind=DependencyKind.WEAK)
        return None
