"""
TeamMate Formation Web Application
==================================

Flask-based web interface for the TeamMate formation solver.
Provides participant CSV upload, team formation, results and export.

Author: TeamMate Formation System
"""

# =============================================================================
# Imports
# =============================================================================

import os
import sys
import io
import uuid
import math
from datetime import datetime

import pandas as pd
import numpy as np
from flask import Flask, render_template, request, jsonify, send_file
from werkzeug.utils import secure_filename

# Add parent directory to path to import solver
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
from analyze_data import summarize_pool
from teammate_data import teams_to_frame
from teammate_model import (
    AllocationError,
    AllocationTimeoutError,
    FileProcessingError,
    InvalidInputError,
)
from teammate_solver import OrderingStrategy, TeamMateSolver


# =============================================================================
# Flask App Configuration
# =============================================================================

app = Flask(__name__)
app.secret_key = os.urandom(24)
app.config['MAX_CONTENT_LENGTH'] = 4 * 1024 * 1024  # 4MB max file size
app.config['UPLOAD_FOLDER'] = os.path.join(os.path.dirname(__file__), 'uploads')

# Ensure upload folder exists
os.makedirs(app.config['UPLOAD_FOLDER'], exist_ok=True)

# In-memory cache for solutions, keyed by solution ID
solutions_cache = {}


# =============================================================================
# Utility Functions
# =============================================================================

def clean_for_json(obj):
    """
    Recursively clean an object for JSON serialization.
    Handles NaN, Infinity and numpy types.
    """
    if isinstance(obj, dict):
        return {k: clean_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [clean_for_json(item) for item in obj]
    elif isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    elif isinstance(obj, (np.integer, np.floating)):
        if np.isnan(obj) or np.isinf(obj):
            return None
        return obj.item()
    elif isinstance(obj, np.ndarray):
        return clean_for_json(obj.tolist())
    return obj


def save_upload(file):
    """Validate and store an uploaded CSV; returns (filename, filepath)."""
    if file.filename == '':
        raise InvalidInputError('No file selected')
    if not file.filename.lower().endswith('.csv'):
        raise InvalidInputError('Please upload a CSV file (.csv)')

    filename = secure_filename(file.filename)
    filepath = os.path.join(app.config['UPLOAD_FOLDER'], f"{uuid.uuid4()}_{filename}")
    file.save(filepath)
    return filename, filepath


# =============================================================================
# Routes
# =============================================================================

@app.route('/')
def index():
    """Render the main page."""
    return render_template('index.html', orderings=[s.value for s in OrderingStrategy])


@app.route('/upload', methods=['POST'])
def upload_file():
    """
    Handle file upload and run the solver.

    Expects:
        - file: CSV file with participant data
        - team_size: Members per team (default: 5)
        - ordering: 'deterministic' or 'shuffled' (default: deterministic)
        - seed: Optional random seed
        - time_limit: Solver time limit in seconds (default: 30)

    Returns:
        JSON with formatted solution or error message
    """
    if 'file' not in request.files:
        return jsonify({'error': 'No file uploaded'}), 400

    try:
        filename, filepath = save_upload(request.files['file'])

        team_size = int(request.form.get('team_size', 5))
        ordering = OrderingStrategy.from_string(request.form.get('ordering', 'deterministic'))
        seed = request.form.get('seed')
        seed = int(seed) if seed not in (None, '') else None
        time_limit = float(request.form.get('time_limit', TeamMateSolver.DEFAULT_TIME_LIMIT))

        solver = TeamMateSolver.from_csv(filepath, verbose=False)
        solution = solver.solve(
            team_size=team_size,
            ordering=ordering,
            seed=seed,
            time_limit_seconds=time_limit,
        )
    except (InvalidInputError, FileProcessingError, ValueError) as e:
        return jsonify({'error': str(e)}), 400
    except AllocationTimeoutError as e:
        app.logger.warning("Team formation timed out: %s", e)
        return jsonify({'error': str(e)}), 504
    except AllocationError as e:
        app.logger.exception("Team formation failed")
        return jsonify({'error': str(e)}), 500

    solution_id = str(uuid.uuid4())
    formatted = format_solution_for_frontend(solution)
    formatted['solution_id'] = solution_id
    formatted['filename'] = filename
    formatted['timestamp'] = datetime.now().isoformat()

    # Cache for later download
    solutions_cache[solution_id] = {
        'solution': solution,
        'filepath': filepath,
    }

    return jsonify(clean_for_json(formatted))


@app.route('/analyze', methods=['POST'])
def analyze_file():
    """Summarize an uploaded participant CSV without forming teams."""
    if 'file' not in request.files:
        return jsonify({'error': 'No file uploaded'}), 400
    try:
        _, filepath = save_upload(request.files['file'])
        summary = summarize_pool(pd.read_csv(filepath, dtype=str))
    except (InvalidInputError, KeyError, pd.errors.ParserError, pd.errors.EmptyDataError) as e:
        return jsonify({'error': f"Could not analyze file: {e}"}), 400
    return jsonify(clean_for_json(summary))


@app.route('/download/<solution_id>/<format_type>')
def download_solution(solution_id, format_type):
    """
    Download the solution in the requested format.

    Args:
        solution_id: UUID of the cached solution
        format_type: 'excel' or 'csv'

    Returns:
        File download response
    """
    if solution_id not in solutions_cache:
        return jsonify({'error': 'Solution not found'}), 404

    solution = solutions_cache[solution_id]['solution']
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if format_type == 'excel':
        return generate_excel_download(solution, timestamp)
    elif format_type == 'csv':
        return generate_csv_download(solution, timestamp)
    else:
        return jsonify({'error': 'Invalid format'}), 400


# =============================================================================
# Solution Formatting
# =============================================================================

def format_solution_for_frontend(solution):
    """Transform solver output into frontend-friendly format."""
    stats = solution['statistics']
    violations = solution['constraint_violations']

    teams = []
    for team in solution['teams']:
        problems = violations.get(team.team_id, [])
        teams.append({
            'id': team.team_id,
            'size': team.size,
            'capacity': team.capacity,
            'average_skill': round(team.average_skill, 2),
            'composition': team.composition(),
            'status': 'success' if not problems else 'warning',
            'violations': problems,
            'members': [format_member(m) for m in team.members],
        })

    return {
        'status': solution['status'],
        'statistics': {
            'total_participants': stats['total_participants'],
            'assigned': stats['assigned'],
            'unassigned': stats['unassigned'],
            'assignment_rate': round(stats['assignment_rate'], 1),
            'teams_formed': stats['teams_formed'],
            'balanced_teams': stats['balanced_teams'],
            'global_average_skill': round(stats['global_average_skill'], 2),
            'skill_spread': round(stats['skill_spread'], 2),
            'balance_swaps': stats['balance_swaps'],
            'repair_swaps': stats['repair_swaps'],
            'ordering': stats['ordering'],
        },
        'teams': teams,
        'unassigned_participants': [format_member(p) for p in solution['unassigned_participants']],
        'constraint_violations': violations,
    }


def format_member(m):
    """Format a single participant for display."""
    return {
        'id': m.id,
        'name': m.name,
        'email': m.email,
        'preferred_game': m.preferred_group,
        'skill_level': m.skill_level,
        'role': m.role.display_name,
        'personality_score': m.trait_score,
        'personality_type': m.trait_type.display_name,
    }


# =============================================================================
# Export Functions
# =============================================================================

def generate_excel_download(solution, timestamp):
    """
    Generate Excel file with multiple sheets:
    - Overview: High-level statistics
    - Team Summary: Team composition breakdown
    - Team Assignments: One row per assigned participant
    - Unassigned: Participants who sat out this run
    """
    output = io.BytesIO()

    stats = solution['statistics']
    df_overview = pd.DataFrame({
        'Metric': [
            'Total Participants',
            'Participants Assigned to Teams',
            'Participants Unassigned',
            'Assignment Rate',
            'Total Teams Formed',
            'Balanced Teams',
            'Average Team Skill',
            'Team Skill Spread',
            'Ordering',
        ],
        'Value': [
            stats['total_participants'],
            stats['assigned'],
            stats['unassigned'],
            f"{stats['assignment_rate']:.1f}%",
            stats['teams_formed'],
            stats['balanced_teams'],
            f"{stats['global_average_skill']:.2f}",
            f"{stats['skill_spread']:.2f}",
            stats['ordering'],
        ]
    })

    summary_rows = []
    for team in solution['teams']:
        c = team.composition()
        row = {
            'Team ID': team.team_id,
            'Team Size': team.size,
            'Average Skill': round(team.average_skill, 2),
            '# Leaders': c['leaders'],
            '# Balanced': c['balanced'],
            '# Thinkers': c['thinkers'],
            'Distinct Roles': c['distinct_roles'],
        }
        for role, count in c['roles'].items():
            row[f'# {role}'] = count
        row['Notes'] = '; '.join(solution['constraint_violations'].get(team.team_id, []))
        summary_rows.append(row)
    df_summary = pd.DataFrame(summary_rows)

    df_assignments = teams_to_frame(solution['teams'])
    df_unassigned = pd.DataFrame(
        [format_member(p) for p in solution['unassigned_participants']],
        columns=['id', 'name', 'email', 'preferred_game', 'skill_level', 'role',
                 'personality_score', 'personality_type'])

    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df_overview.to_excel(writer, sheet_name='Overview', index=False)
        df_summary.to_excel(writer, sheet_name='Team Summary', index=False)
        df_assignments.to_excel(writer, sheet_name='Team Assignments', index=False)
        df_unassigned.to_excel(writer, sheet_name='Unassigned', index=False)

    output.seek(0)
    return send_file(
        output,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=f'teammate_teams_{timestamp}.xlsx'
    )


def generate_csv_download(solution, timestamp):
    """Generate a flat CSV with one row per assigned participant."""
    output = io.StringIO()
    teams_to_frame(solution['teams']).to_csv(output, index=False)

    output.seek(0)
    return send_file(
        io.BytesIO(output.getvalue().encode()),
        mimetype='text/csv',
        as_attachment=True,
        download_name=f'teammate_teams_{timestamp}.csv'
    )


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == '__main__':
    port = int(os.environ.get('PORT', 5000))
    app.run(debug=False, host='0.0.0.0', port=port)
