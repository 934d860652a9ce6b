#!/usr/bin/env python3
import argparse
import os
import sys
from datetime import datetime
from pathlib import Path

from site_data import (
    ANIMALS_FILE,
    EVENTS_FILE,
    SITE_KEY,
    SITE_NAME,
    STATE_PROV,
    attach_site_locations,
    data_dir,
    load_animals,
    load_events,
    summarize_sites,
)

OUTPUT_DIR = "outputs"
HEAD_ROWS = 6
TOP_SITES = 15
SITE_HEADERS = ("SiteName", "StateProv", "District", "Latitude", "Longitude", "Events")


def format_table(rows, headers):
    widths = [len(h) for h in headers]
    for row in rows:
        for i, cell in enumerate(row):
            widths[i] = max(widths[i], len(str(cell)))
    line = "+".join("-" * (w + 2) for w in widths)
    def fmt_row(r):
        return "|".join(f" {str(r[i]).ljust(widths[i])} " for i in range(len(r)))
    out = [line, fmt_row(headers), line]
    out.extend(fmt_row(r) for r in rows)
    out.append(line)
    return "\n".join(out)


def frame_rows(frame):
    return [tuple(row) for row in frame.itertuples(index=False)]


def describe_table(frame):
    """One row per column: name, dtype, non-null count and first value."""
    rows = []
    for column in frame.columns:
        series = frame[column]
        first = series.iloc[0] if len(series) else ""
        rows.append((column, str(series.dtype), int(series.notna().sum()), first))
    return rows


def animals_per_site(animals):
    missing = [column for column in SITE_KEY if column not in animals.columns]
    if missing:
        raise KeyError(f"animal table has no site columns {missing}; join it to the events first")
    counts = animals.groupby(SITE_KEY, dropna=False).size().reset_index(name="animals")
    return counts.sort_values("animals", ascending=False, kind="stable").reset_index(drop=True)


def state_summary(sites):
    summary = (
        sites.groupby(STATE_PROV, dropna=False)
        .agg(sites=(SITE_NAME, "size"), events=("n", "sum"))
        .reset_index()
    )
    return summary.sort_values("events", ascending=False, kind="stable").reset_index(drop=True)


def site_rows(sites):
    ordered = sites.sort_values("n", ascending=False, kind="stable")
    return frame_rows(ordered[SITE_KEY + ["n"]])


def _style_header(ws, columns, row=1):
    from openpyxl.styles import Alignment, Font, PatternFill

    header_fill = PatternFill("solid", fgColor="DDEBF7")
    header_font = Font(bold=True)
    align = Alignment(horizontal="left", vertical="center")
    for col in range(1, columns + 1):
        cell = ws.cell(row=row, column=col)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = align


def _fit_columns(ws, limit=50):
    for col_cells in ws.columns:
        max_len = 0
        col_letter = col_cells[0].column_letter
        for cell in col_cells:
            value = cell.value
            if value is None:
                continue
            max_len = max(max_len, len(str(value)))
        ws.column_dimensions[col_letter].width = min(max_len + 2, limit)


def _append_sheet(wb, title, headers, rows):
    ws = wb.create_sheet(title)
    ws.page_setup.paperSize = ws.PAPERSIZE_A4
    ws.page_setup.orientation = ws.ORIENTATION_PORTRAIT
    ws.append(headers)
    _style_header(ws, len(headers))
    for row in rows:
        ws.append([None if _is_missing(value) else value for value in row])
    _fit_columns(ws)
    return ws


def _is_missing(value):
    return isinstance(value, float) and value != value


def write_xlsx(sites, animal_counts, states, output_dir):
    try:
        from openpyxl import Workbook
        from openpyxl.chart import BarChart, Reference
    except ImportError:  # pragma: no cover - optional dependency
        print("Missing dependency: openpyxl (install with pip install openpyxl)", file=sys.stderr)
        return None

    os.makedirs(output_dir, exist_ok=True)
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    out_path = Path(output_dir) / f"sites_{ts}.xlsx"

    wb = Workbook()
    wb.remove(wb.active)

    rows = site_rows(sites)
    ws = _append_sheet(wb, "Sites", SITE_HEADERS, rows)

    # Chart: top sites by number of events.
    chart = BarChart()
    chart.title = f"Top {TOP_SITES} sites by events"
    chart.y_axis.title = "Events"
    chart.x_axis.title = "Site"
    top_rows = min(TOP_SITES, len(rows))
    if top_rows > 0:
        events_col = len(SITE_HEADERS)
        data_ref = Reference(ws, min_col=events_col, min_row=1, max_row=top_rows + 1)
        cats_ref = Reference(ws, min_col=1, min_row=2, max_row=top_rows + 1)
        chart.add_data(data_ref, titles_from_data=True)
        chart.set_categories(cats_ref)
        chart.height = 12
        chart.width = 22
        ws.add_chart(chart, "H2")

    if animal_counts is not None:
        _append_sheet(
            wb,
            "Animals_per_site",
            SITE_HEADERS[:-1] + ("Animals",),
            frame_rows(animal_counts),
        )
    _append_sheet(wb, "StateProv", ("StateProv", "Sites", "Events"), frame_rows(states))

    wb.save(out_path)
    return out_path


def print_overview(label, frame, head):
    print(f"{label}: {len(frame)} rows, {len(frame.columns)} columns")
    print(format_table(frame_rows(frame.head(head)), tuple(frame.columns)))
    print(format_table(describe_table(frame), ("Column", "Type", "Non-null", "First")))


def main(argv=None):
    base = data_dir()
    parser = argparse.ArgumentParser(description="Summarize sampling events, animals and sites.")
    parser.add_argument("--events", type=Path, default=base / EVENTS_FILE, help="Event CSV file.")
    parser.add_argument("--animals", type=Path, default=base / ANIMALS_FILE, help="Animal CSV file.")
    parser.add_argument("--head", type=int, default=HEAD_ROWS, help="Rows to preview per table.")
    parser.add_argument(
        "--xlsx",
        action="store_true",
        help="Also write an Excel report with site, animal and StateProv sheets.",
    )
    parser.add_argument("--output-dir", default=OUTPUT_DIR, help="Directory for the Excel report.")
    args = parser.parse_args(argv)

    for path in (args.events, args.animals):
        if not path.exists():
            print(f"Missing {path}.", file=sys.stderr)
            return 1

    try:
        events = load_events(args.events)
        animals = load_animals(args.animals)
        print_overview("Events", events, args.head)
        print_overview("Animals", animals, args.head)
        animals = attach_site_locations(animals, events)
        animal_counts = None
        if all(column in animals.columns for column in SITE_KEY):
            animal_counts = animals_per_site(animals)
    except (KeyError, ValueError) as exc:
        print(f"Failed to load input data: {exc}", file=sys.stderr)
        return 1

    sites = summarize_sites(events)
    states = state_summary(sites)
    print(f"{len(sites)} unique sites from {len(events)} events", file=sys.stderr)
    print(format_table(site_rows(sites), SITE_HEADERS))
    print(format_table(frame_rows(states), ("StateProv", "Sites", "Events")))

    if args.xlsx:
        out_path = write_xlsx(sites, animal_counts, states, args.output_dir)
        if out_path:
            print(f"Saved Excel report to {out_path}", file=sys.stderr)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
