from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import List, Optional

import typer
from rich import print
from rich.table import Table

from .config import Settings
from .data_models import CARE_STYLE_LABELS, CARE_STYLES, PATIENT_TYPE_LABELS, PATIENT_TYPES
from .ingest import IngestError
from .logger import configure_logging
from .matching_models import MatchCandidate
from .recommender import (
	DirectoryFilter,
	TYPE_STYLE_MATCH,
	attach_pharmacies,
	candidates_to_frame,
	filter_by_access_scope,
	filter_directory,
	rank_candidates,
	recommend,
	score_candidates,
)
from .repository import MatchingRepository, RepositoryError, build_repository
from .scorer import score_pharmacist


app = typer.Typer(help="PharmacyOS pharmacist matching CLI")


class _State:
	settings: Settings
	repo: Optional[MatchingRepository] = None


state = _State()


def _repo() -> MatchingRepository:
	if state.repo is None:
		state.repo = build_repository(state.settings)
	return state.repo


def _fail(message: str) -> None:
	print(f"[red]Error:[/red] {message}")
	raise typer.Exit(code=1)


def _check_type(patient_type: Optional[str]) -> Optional[str]:
	if patient_type is None:
		return None
	value = patient_type.strip().upper()
	if value not in PATIENT_TYPES:
		raise typer.BadParameter(f"must be one of {', '.join(PATIENT_TYPES)}")
	return value


def _candidates_table(candidates: List[MatchCandidate], title: str) -> Table:
	table = Table("#", "pharmacist", "pharmacy", "area", "score", "reasons", title=title)
	for i, c in enumerate(candidates, start=1):
		table.add_row(
			str(i),
			c.pharmacist.name or str(c.pharmacist.id),
			(c.pharmacy.name or "") if c.pharmacy else "-",
			(c.pharmacy.area or "") if c.pharmacy else "-",
			"-" if c.score is None else str(c.score),
			"\n".join(c.reasons),
		)
	return table


def _write_csv(candidates: List[MatchCandidate], out_path: Optional[Path]) -> None:
	if out_path is None:
		return
	out_path.parent.mkdir(parents=True, exist_ok=True)
	candidates_to_frame(candidates).to_csv(out_path, index=False)
	print(f"[green]Saved {len(candidates)} rows to[/green] {out_path}")


@app.callback()
def main(
	data_dir: Optional[Path] = typer.Option(None, help="Directory holding patients/pharmacists/pharmacies tables"),
):
	"""Load settings (environment / .env) once for every command."""
	try:
		settings = Settings.from_env()
	except (ValueError, RuntimeError) as e:
		_fail(str(e))
	if data_dir is not None:
		settings = replace(settings, data_dir=data_dir)
	configure_logging(settings.log_level)
	state.settings = settings
	state.repo = None


@app.command()
def score(
	patient_id: str = typer.Argument(..., help="Patient id"),
	pharmacist_id: str = typer.Argument(..., help="Pharmacist id"),
	patient_type: Optional[str] = typer.Option(None, "--type", help="Override the patient's A-D type"),
):
	"""Score one pharmacist for one patient."""
	ptype = _check_type(patient_type)
	try:
		repo = _repo()
		patient = repo.get_patient(patient_id)
		pharmacist = repo.get_pharmacist(pharmacist_id)
		pharmacies = {p.id: p for p in repo.list_pharmacies()}
	except (RepositoryError, IngestError) as e:
		_fail(str(e))

	pharmacy = pharmacies.get(pharmacist.belongs_pharmacy_id)
	result = score_pharmacist(patient, ptype, pharmacist, pharmacy)
	print(f"[bold]{pharmacist.name or pharmacist.id}[/bold] for patient {patient.id}: score={result.score}")
	for reason in result.reasons:
		print(f"  - {reason}")
	if result.components:
		table = Table("rule", "points", title="Breakdown")
		for rule, points in result.components.items():
			table.add_row(rule, f"{points:g}")
		print(table)


@app.command()
def match(
	patient_id: str = typer.Argument(..., help="Patient id"),
	patient_type: Optional[str] = typer.Option(None, "--type", help="Override the patient's A-D type"),
	top_k: Optional[int] = typer.Option(None, help="Number of matches to show (default from settings)"),
	linked: bool = typer.Option(False, "--linked/--not-linked", help="Patient is linked to a logged-in account"),
	out_path: Optional[Path] = typer.Option(None, "--out", help="Write matches to this CSV"),
):
	"""Show the best pharmacists for a patient, plus their main pharmacist."""
	ptype = _check_type(patient_type)
	k = top_k if top_k is not None else state.settings.top_k
	if k < 1:
		raise typer.BadParameter("top-k must be at least 1")
	try:
		repo = _repo()
		patient = repo.get_patient(patient_id)
		report = recommend(
			patient,
			repo.list_pharmacists(),
			repo.list_pharmacies(),
			patient_type=ptype,
			top_k=k,
			is_linked_patient=linked,
		)
	except (RepositoryError, IngestError) as e:
		_fail(str(e))

	print(f"Patient {patient.id}: [bold]{PATIENT_TYPE_LABELS[report.patient_type]}[/bold]")
	if patient.care_style:
		mark = TYPE_STYLE_MATCH[report.patient_type][patient.care_style]
		print(f"Care style: {CARE_STYLE_LABELS[patient.care_style]} ({mark})")
	if report.candidates:
		print(_candidates_table(report.candidates, title="Top matches"))
	else:
		print("[yellow]No pharmacist scored above zero.[/yellow]")
	if report.main_candidate is not None:
		main_c = report.main_candidate
		print(f"Main pharmacist: {main_c.pharmacist.name or main_c.pharmacist.id} (score={main_c.score})")
	_write_csv(report.candidates, out_path)


@app.command()
def directory(
	patient_id: Optional[str] = typer.Option(None, help="Score and sort against this patient"),
	patient_type: Optional[str] = typer.Option(None, "--type", help="Override the patient's A-D type"),
	keyword: Optional[str] = typer.Option(None, help="Free-text search"),
	language: Optional[str] = typer.Option(None, help="Language code, e.g. en"),
	specialty: Optional[str] = typer.Option(None, help="Specialty tag"),
	care_style: Optional[str] = typer.Option(None, help="Care role the pharmacist serves"),
	area: Optional[str] = typer.Option(None, help="Pharmacy area (exact)"),
	experience: Optional[str] = typer.Option(None, help="Years band: 0-3, 4-7 or 8plus"),
	gender: Optional[str] = typer.Option(None, help="Gender"),
	age_category: Optional[str] = typer.Option(None, help="Age category"),
	multilingual_only: bool = typer.Option(False, "--multilingual-only", help="Only multilingual pharmacies"),
	linked: bool = typer.Option(False, "--linked/--not-linked", help="Include registered-only profiles"),
	out_path: Optional[Path] = typer.Option(None, "--out", help="Write the listing to this CSV"),
):
	"""Browse pharmacists with filters; sorted by score when a patient is given."""
	ptype = _check_type(patient_type)
	try:
		flt = DirectoryFilter(
			keyword=keyword,
			language=language,
			specialty=specialty,
			care_style=care_style,
			area=area,
			experience=experience,
			gender=gender,
			age_category=age_category,
			multilingual_only=multilingual_only,
		)
	except ValueError as e:
		raise typer.BadParameter(str(e))

	try:
		repo = _repo()
		patient = repo.get_patient(patient_id) if patient_id else None
		candidates = attach_pharmacies(repo.list_pharmacists(), repo.list_pharmacies())
	except (RepositoryError, IngestError) as e:
		_fail(str(e))

	visible = filter_by_access_scope(candidates, is_linked_patient=linked)
	listed = rank_candidates(score_candidates(patient, ptype, filter_directory(visible, flt)))
	print(f"[bold]{len(listed)}[/bold] of {len(visible)} pharmacists")
	print(_candidates_table(listed, title="Directory"))
	_write_csv(listed, out_path)


@app.command()
def affinity():
	"""Print the patient type x care style affinity matrix."""
	table = Table("care style", *PATIENT_TYPES, title="◎ especially good / ◯ good / △ depends")
	for style in CARE_STYLES:
		table.add_row(CARE_STYLE_LABELS[style], *(TYPE_STYLE_MATCH[t][style] for t in PATIENT_TYPES))
	print(table)


if __name__ == "__main__":
	app()
