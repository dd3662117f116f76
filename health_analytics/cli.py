"""Command-line interface for the health analytics engine."""

import logging
from pathlib import Path
from typing import Optional

import click
from rich import box
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.table import Table

from .config import config
from .labels import IntentLabelStore
from .loaders import load_labels, load_metrics, load_workouts, write_labels
from .models import ActivityType, LabelSource
from .analysis import (
    HeuristicIntentClassifier,
    IntentAwareReadinessService,
    IntentClassifier,
    InsufficientDataError,
    SampleSizeValidator,
    TemporalModelingService,
)
from .analysis.intent_classifier import load_model, save_model

console = Console()

LEVEL_STYLES = {
    "excellent": "green",
    "good": "cyan",
    "fair": "yellow",
    "poor": "red",
    "high": "green",
    "medium": "yellow",
    "low": "orange3",
    "insufficient": "red",
}


def _styled(value: str) -> str:
    style = LEVEL_STYLES.get(value, "white")
    return f"[{style}]{value}[/{style}]"


def _load_store(labels_path: Optional[str]) -> IntentLabelStore:
    if labels_path and Path(labels_path).exists():
        return load_labels(labels_path)
    return IntentLabelStore()


@click.group()
@click.option("--log-level", default=None, help="Logging level (defaults to LOG_LEVEL)")
def cli(log_level):
    """Intent-aware training readiness and performance analytics."""
    logging.basicConfig(
        level=(log_level or config.LOG_LEVEL).upper(),
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


@cli.command()
@click.option("--workouts", "workouts_path", required=True, type=click.Path(exists=True), help="Workouts CSV")
@click.option("--labels", "labels_path", default=None, help="Existing labels CSV (labeled workouts are skipped)")
@click.option("--model", "model_path", default=None, type=click.Path(exists=True), help="Use a trained model instead of rules")
@click.option("--output", default=None, help="Write merged labels to this CSV")
def classify(workouts_path, labels_path, model_path, output):
    """Classify workout intents for unlabeled workouts."""
    console.print(Panel.fit("Workout Intent Classification", style="bold blue"))

    try:
        workouts = load_workouts(workouts_path)
        store = _load_store(labels_path)

        if model_path:
            trained = load_model(model_path)
            results = IntentClassifier().classify_all(
                workouts, trained.model, trained.allowed_categories, store.labeled_ids()
            )
            source = LabelSource.TRAINED_MODEL
        else:
            results = HeuristicIntentClassifier().classify_all(workouts, store.labeled_ids())
            source = LabelSource.HEURISTIC
    except (ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    table = Table(title=f"Classified {len(results)} workouts", box=box.ROUNDED)
    table.add_column("Workout", style="cyan")
    table.add_column("Intent", style="white")
    table.add_column("Confidence", justify="right")
    for result in results:
        table.add_row(result.workout_id, result.intent.display_name, f"{result.confidence:.0%}")
    console.print(table)

    if output:
        written = store.apply_classifications(results, source)
        write_labels(store, output)
        console.print(f"[green]Saved {written} new labels to {output}[/green]")


@cli.command()
@click.option("--workouts", "workouts_path", required=True, type=click.Path(exists=True), help="Workouts CSV")
@click.option("--labels", "labels_path", required=True, type=click.Path(exists=True), help="Labels CSV")
@click.option("--output", default=None, help="Model file (defaults to MODEL_DIR/intent_classifier.joblib)")
def train(workouts_path, labels_path, output):
    """Train the intent classifier from labeled workouts."""
    console.print(Panel.fit("Training Intent Classifier", style="bold blue"))

    try:
        workouts = load_workouts(workouts_path)
        store = load_labels(labels_path)
        classifier = IntentClassifier()
        examples = classifier.training_examples(workouts, store.labels())
        result = classifier.train(examples)
    except InsufficientDataError as e:
        console.print(f"[orange3]{e}[/orange3]")
        return
    except (ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    if output is None:
        config.ensure_dirs()
        output = config.MODEL_DIR / "intent_classifier.joblib"
    path = save_model(result, output)

    table = Table(title="Training Summary", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Examples", str(result.sample_count))
    table.add_row("Training accuracy", f"{result.training_accuracy:.1f}%")
    table.add_row("Validation accuracy", f"{result.validation_accuracy:.1f}%")
    table.add_row("Activity types", ", ".join(sorted(result.allowed_categories)))
    for name, weight in result.top_features():
        table.add_row(f"Feature: {name}", f"{weight:.0%}")
    console.print(table)
    console.print(f"[green]Model saved to {path}[/green]")


@cli.command()
@click.option("--workouts", "workouts_path", required=True, type=click.Path(exists=True), help="Workouts CSV")
@click.option("--labels", "labels_path", required=True, type=click.Path(exists=True), help="Labels CSV")
@click.option("--metrics", "metrics_path", default=None, type=click.Path(exists=True), help="Health metrics CSV")
@click.option("--iterations", default=None, type=int, help="Bootstrap iterations")
@click.option("--seed", default=None, type=int, help="Random seed for the bootstrap")
def readiness(workouts_path, labels_path, metrics_path, iterations, seed):
    """Show today's intent-aware readiness."""
    console.print(Panel.fit("Training Readiness", style="bold blue"))

    try:
        workouts = load_workouts(workouts_path)
        store = load_labels(labels_path)
        metrics = load_metrics(metrics_path) if metrics_path else {}
    except (ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    service = IntentAwareReadinessService(bootstrap_iterations=iterations)
    assessment = service.calculate_readiness(
        workouts,
        store.labels(),
        sleep=metrics.get("Sleep", []),
        hrv=metrics.get("HRV", []),
        rng=seed,
    )

    summary = Table(box=box.ROUNDED, show_header=False)
    summary.add_column("Metric", style="cyan")
    summary.add_column("Value")
    summary.add_row("ACWR", assessment.acwr.formatted_with_ci())
    summary.add_row("Trend", assessment.trend.value)
    summary.add_row("Acute load", f"{assessment.acute_load:.2f}")
    summary.add_row("Chronic load", f"{assessment.chronic_load:.2f}")
    summary.add_row("Confidence", _styled(assessment.acwr.confidence.value))
    summary.add_row("Data quality", _styled(assessment.data_quality.overall_quality.value))
    console.print(summary)

    if not assessment.sample_validation.is_valid:
        console.print(f"[orange3]{assessment.sample_validation.message}[/orange3]")

    table = Table(title="Readiness by Intent", box=box.ROUNDED)
    table.add_column("Intent", style="cyan")
    table.add_column("Readiness")
    table.add_column("Confidence")
    table.add_column("Labels", justify="right")
    for intent, r in assessment.performance_readiness.items():
        table.add_row(intent.display_name, _styled(r.level.value), _styled(r.confidence.value), str(r.sample_size))
    console.print(table)

    if assessment.recommended_intents:
        names = ", ".join(i.display_name for i in assessment.recommended_intents)
        console.print(f"[green]Recommended:[/green] {names}")
    if assessment.avoid_intents:
        names = ", ".join(i.display_name for i in assessment.avoid_intents)
        console.print(f"[red]Avoid:[/red] {names}")


@cli.command()
@click.option("--workouts", "workouts_path", required=True, type=click.Path(exists=True), help="Workouts CSV")
@click.option("--sport", type=click.Choice(["run", "ride", "swim"]), default="ride", help="Activity type")
def temporal(workouts_path, sport):
    """Show recency, seasonal and long-term performance trends."""
    console.print(Panel.fit(f"Temporal Analysis: {sport}", style="bold blue"))

    try:
        workouts = load_workouts(workouts_path)
    except (ValueError, OSError) as e:
        console.print(f"[red]Error: {e}[/red]")
        return

    analysis = TemporalModelingService().analyze(workouts, ActivityType(sport))
    if analysis is None:
        console.print("[orange3]Not enough workouts for temporal analysis (need at least 10).[/orange3]")
        return

    synthesis = analysis.synthesis
    body = "\n".join(f"- {insight}" for insight in synthesis.insights)
    console.print(Panel(
        f"{body}\n\n[bold]{synthesis.recommendation}[/bold]",
        title=synthesis.headline,
        subtitle=f"confidence: {synthesis.confidence.value}",
        box=box.ROUNDED,
    ))

    if analysis.longitudinal.peak_periods:
        table = Table(title=f"Peak Periods ({analysis.longitudinal.metric_type})", box=box.ROUNDED)
        table.add_column("Start", style="cyan")
        table.add_column("End")
        table.add_column("Average", justify="right")
        for peak in analysis.longitudinal.peak_periods:
            table.add_row(f"{peak.start_date:%Y-%m-%d}", f"{peak.end_date:%Y-%m-%d}", f"{peak.average_performance:.1f}")
        console.print(table)


@cli.command()
@click.option("--effect-size", required=True, type=float, help="Expected Cohen's d")
@click.option("--sample-size", default=None, type=int, help="Sample size to evaluate")
@click.option("--target-power", default=0.8, type=float, help="Desired statistical power")
def power(effect_size, sample_size, target_power):
    """Estimate statistical power and the sample size needed."""
    table = Table(title="Power Analysis", box=box.ROUNDED)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    if sample_size is not None:
        achieved = SampleSizeValidator.calculate_power(sample_size, effect_size)
        table.add_row(f"Power at n={sample_size}", f"{achieved:.1%}")
    needed = SampleSizeValidator.recommended_sample_size(effect_size, desired_power=target_power)
    table.add_row(f"n for {target_power:.0%} power", str(needed))
    console.print(table)


@cli.command()
def rules():
    """Print the heuristic classification rules."""
    console.print(Panel(HeuristicIntentClassifier.classification_rules(), title="Classification Rules", box=box.ROUNDED))


if __name__ == "__main__":
    cli()
