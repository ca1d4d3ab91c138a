"""Batch rendering of one template against many data contexts."""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from .errors import TemplateError
from .template import Template, TemplateEngine

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Result of a batch rendering operation."""

    rendered: List[str]
    success_count: int
    error_count: int
    errors: List[Tuple[int, str]] = field(default_factory=list)
    render_time: float = 0.0
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def success_rate(self) -> float:
        """Calculate success rate percentage."""
        total = self.success_count + self.error_count
        return (self.success_count / total * 100) if total > 0 else 0.0


class BatchRenderer:
    """Renders a template for many contexts, in parallel for large batches.

    Compiled templates, filters and contexts are immutable during rendering,
    so the worker threads share one compiled template.
    """

    PARALLEL_THRESHOLD = 100

    def __init__(
        self,
        engine: Optional[TemplateEngine] = None,
        batch_size: int = 100,
        max_workers: int = 4,
    ) -> None:
        """Initialize the batch renderer.

        Args:
            engine: Template engine to use (creates new if None)
            batch_size: Number of contexts rendered by each worker task
            max_workers: Maximum worker threads for parallel processing
        """
        self.engine = engine or TemplateEngine()
        self.batch_size = batch_size
        self.max_workers = max_workers

    def render(
        self,
        template_string: str,
        contexts: List[Any],
        progress_callback: Optional[Callable[[int], None]] = None,
        strict: Optional[bool] = None,
        parallel: bool = True,
    ) -> RenderResult:
        """Render a template with multiple contexts.

        Args:
            template_string: The template to render
            contexts: List of data mappings
            progress_callback: Called with the number of contexts just rendered
            strict: Raise errors on undefined variables (None keeps the config)
            parallel: Use worker threads for large batches

        Returns:
            RenderResult with all renderings and statistics
        """
        start_time = time.time()
        n_contexts = len(contexts)

        # Validate template once
        errors = self.engine.validate_template(template_string)
        if errors:
            logger.warning(f"Template failed validation: {errors}")
            return RenderResult(
                rendered=[],
                success_count=0,
                error_count=len(errors),
                errors=[(0, error) for error in errors],
                render_time=time.time() - start_time,
                metadata={"validation_failed": True},
            )

        # Compile template once for efficiency
        template = self.engine.compile_template(template_string)

        use_parallel = parallel and n_contexts >= self.PARALLEL_THRESHOLD
        if use_parallel:
            results, failures = self._render_parallel(
                template, contexts, progress_callback, strict
            )
        else:
            results, failures = self._render_sequential(
                template, contexts, progress_callback, strict
            )

        render_time = time.time() - start_time
        logger.info(
            f"Rendered {n_contexts} contexts in {render_time:.3f}s "
            f"({len(failures)} failures)"
        )

        return RenderResult(
            rendered=results,
            success_count=n_contexts - len(failures),
            error_count=len(failures),
            errors=sorted(failures),
            render_time=render_time,
            metadata={
                "total_contexts": n_contexts,
                "batch_size": self.batch_size,
                "parallel": use_parallel,
                "avg_time_per_render": (
                    render_time / n_contexts if n_contexts > 0 else 0
                ),
            },
        )

    def _render_sequential(
        self,
        template: Template,
        contexts: List[Any],
        progress_callback: Optional[Callable[[int], None]],
        strict: Optional[bool],
    ) -> Tuple[List[str], List[Tuple[int, str]]]:
        """Render templates one after the other."""
        results, failures = self._render_batch(template, contexts, strict)
        for index, _ in failures:
            logger.warning(f"Context {index} failed to render")

        if progress_callback:
            for start in range(0, len(contexts), 10):
                progress_callback(min(10, len(contexts) - start))

        return results, failures

    def _render_parallel(
        self,
        template: Template,
        contexts: List[Any],
        progress_callback: Optional[Callable[[int], None]],
        strict: Optional[bool],
    ) -> Tuple[List[str], List[Tuple[int, str]]]:
        """Render templates in parallel batches."""
        results: List[str] = [""] * len(contexts)
        failures: List[Tuple[int, str]] = []

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_batch = {
                executor.submit(self._render_batch, template, batch, strict): (
                    batch_idx,
                    len(batch),
                )
                for batch_idx, batch in self._create_batches(contexts)
            }

            for future in as_completed(future_to_batch):
                batch_idx, batch_size = future_to_batch[future]
                batch_results, batch_failures = future.result()

                # Store results in correct positions
                start_idx = batch_idx * self.batch_size
                results[start_idx : start_idx + batch_size] = batch_results

                for error_idx, error_msg in batch_failures:
                    logger.warning(f"Context {start_idx + error_idx} failed to render")
                    failures.append((start_idx + error_idx, error_msg))

                if progress_callback:
                    progress_callback(batch_size)

        return results, failures

    def _create_batches(self, contexts: List[Any]) -> List[Tuple[int, List[Any]]]:
        """Split contexts into batches."""
        return [
            (i // self.batch_size, contexts[i : i + self.batch_size])
            for i in range(0, len(contexts), self.batch_size)
        ]

    def _render_batch(
        self,
        template: Template,
        batch: List[Any],
        strict: Optional[bool],
    ) -> Tuple[List[str], List[Tuple[int, str]]]:
        """Render a single batch of contexts."""
        results = []
        failures = []

        for i, data in enumerate(batch):
            try:
                results.append(template.render(data, strict=strict))
            except TemplateError as e:
                results.append(f"ERROR: {e}")
                failures.append((i, str(e)))

        return results, failures
