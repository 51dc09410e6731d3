"""Analyze a participant CSV to understand the pool before forming teams."""
import sys

import numpy as np
import pandas as pd

from teammate_model import TraitType, classify_trait_score


def summarize_pool(data: pd.DataFrame) -> dict:
    """Distribution of traits, roles, games and skills, plus feasible team counts."""
    data = data.copy()
    data['SkillLevel'] = pd.to_numeric(data['SkillLevel'], errors='coerce')
    data['PersonalityScore'] = pd.to_numeric(data['PersonalityScore'], errors='coerce')
    valid = data.dropna(subset=['SkillLevel', 'PersonalityScore'])
    valid = valid[valid['PersonalityScore'].between(50, 100) & valid['SkillLevel'].between(1, 10)]

    traits = valid['PersonalityScore'].astype(int).map(lambda s: classify_trait_score(s).display_name)
    total = len(valid)

    feasibility = {}
    for size in range(3, 11):
        teams = total // size
        feasibility[size] = {
            'teams': teams,
            'unassigned': total - teams * size,
            'feasible': teams >= 2,
        }

    skills = valid['SkillLevel'].to_numpy(dtype=float)
    return {
        'total_rows': len(data),
        'valid_rows': total,
        'traits': {t.display_name: int((traits == t.display_name).sum()) for t in TraitType},
        'roles': valid['PreferredRole'].str.strip().str.title().value_counts().to_dict(),
        'games': valid['PreferredGame'].str.strip().value_counts().to_dict(),
        'skill_mean': float(np.mean(skills)) if total else 0.0,
        'skill_std': float(np.std(skills)) if total else 0.0,
        'team_sizes': feasibility,
    }


def print_summary(summary: dict):
    print(f"\n=== TOTAL ROWS: {summary['total_rows']} ({summary['valid_rows']} valid) ===")

    print("\n=== PERSONALITY TYPES ===")
    for label, ct in summary['traits'].items():
        print(f"  {label}: {ct}")

    print("\n=== PREFERRED ROLES ===")
    for label, ct in summary['roles'].items():
        print(f"  {label}: {ct}")

    print("\n=== PREFERRED GAMES ===")
    for label, ct in summary['games'].items():
        print(f"  {label}: {ct}")

    print(f"\n=== SKILL ===")
    print(f"  Mean: {summary['skill_mean']:.2f}, Std: {summary['skill_std']:.2f}")

    # Leader/Thinker supply decides whether every team can get one of each
    print(f"\n=== TEAM SIZES ===")
    leaders = summary['traits'].get('Leader', 0)
    thinkers = summary['traits'].get('Thinker', 0)
    for size, info in summary['team_sizes'].items():
        if not info['feasible']:
            print(f"  Size {size}: not feasible (fewer than 2 teams)")
            continue
        notes = []
        if leaders < info['teams']:
            notes.append(f"{info['teams'] - leaders} teams without a Leader")
        if thinkers < info['teams']:
            notes.append(f"{info['teams'] - thinkers} teams without a Thinker")
        print(f"  Size {size}: {info['teams']} teams, {info['unassigned']} unassigned"
              + (f" ({'; '.join(notes)})" if notes else ""))


if __name__ == '__main__':
    path = sys.argv[1] if len(sys.argv) > 1 else 'data/participants_sample.csv'
    print_summary(summarize_pool(pd.read_csv(path, dtype=str)))
