"""Prompt templates for the workflow steps."""

# =============================================================================
# Idea generation
# =============================================================================

IDEA_SYSTEM = """You are a senior product strategist. You turn rough product ideas into
structured product concepts: a clear title, the problem being solved, who it is
for, a prioritized feature list with acceptance criteria, realistic user personas
and an honest market validation.

Be concrete. Prefer a few well-defined features over a long vague list."""

IDEA_TEMPLATE = """I have a product idea I'd like to develop: "{raw_idea}"
{additional_context}{knowledge}
Refine this idea into a structured product concept with:
- A refined idea (title, description, problem statement, target audience, 3-7 features with priorities and acceptance criteria)
- 2-3 user personas with goals, needs and pain points
- Clarifying questions worth asking the founder
- Market validation (similar products, unique value proposition, market size, competitive advantage)
- Next steps"""


# =============================================================================
# User stories
# =============================================================================

USER_STORY_SYSTEM = """You are an experienced agile product owner. You write user stories in the
form "As a <persona>, I want to <action> so that <benefit>", each with testable
acceptance criteria, a priority (critical, high, medium, low) and a story point
estimate on the Fibonacci scale (1, 2, 3, 5, 8, 13).

Give every story a short unique id such as "US-001". Epics, the implementation
order and the MVP list must only reference ids of stories you wrote."""

USER_STORY_TEMPLATE = """Create user stories for this product.

Product:
- Title: {title}
- Description: {description}
- Problem: {problem_statement}
- Target audience: {target_audience}
- Features:
{features}

User personas:
{personas}
{additional_context}{focus_areas}
Cover onboarding and account management, the core features, user experience
(navigation, search, settings, accessibility) and valuable secondary features.
Group the stories into epics, give an implementation order, mark the MVP stories
and add implementation recommendations."""


# =============================================================================
# PRD
# =============================================================================

PRD_SYSTEM = """You are a principal product manager writing Product Requirements Documents
that engineering, design and stakeholders can act on. Write crisp sections, make
goals measurable and state assumptions, constraints and open questions explicitly."""

PRD_TEMPLATE = """Write a PRD for this product.

Product:
- Title: {title}
- Description: {description}
- Problem: {problem_statement}
- Target audience: {target_audience}
- Features:
{features}

User personas:
{personas}

User stories:
{stories}
{additional_context}
Include an executive summary, problem statement, solution overview, features
with acceptance criteria and priority, personas, goals with metrics and targets,
assumptions, constraints, dependencies, open questions, future considerations,
a short technical overview and UI/UX notes."""


# =============================================================================
# Sprint planning
# =============================================================================

SPRINT_SYSTEM = """You are an agile delivery lead. Stories have already been allocated to sprints
by capacity; your job is to describe each sprint: a focused sprint goal, the
concrete deliverables and the main risks. Do not move stories between sprints
and only describe sprints that exist in the plan."""

SPRINT_TEMPLATE = """Product: {title}
Team size: {team_size} developers, sprint length: {sprint_length}, capacity: {capacity} story points per sprint.

Planned sprints:
{sprints}
{unallocated}{additional_context}
For each sprint number above, write a goal, 2-4 deliverables and 1-3 risks.
Add overall risk factors and recommendations for the plan."""


# =============================================================================
# Visual design
# =============================================================================

VISUAL_SYSTEM = """You are a UX designer mapping products onto visual boards. You describe user
journeys as ordered stages with touchpoints and pain points, and the core
product process as an ordered list of steps."""

VISUAL_TEMPLATE = """Design the visual board content for this product.

Product: {title}
Features:
{features}

User personas:
{personas}

Key user stories:
{stories}
{additional_context}
Return 4-7 user journey stages (awareness through retention), a process flow of
4-8 steps for the core product workflow, and design insights: user experience
gaps, process optimizations and stakeholder recommendations."""


ADDITIONAL_CONTEXT = "\nAdditional context from the user:\n{context}\n"


# =============================================================================
# Rendering helpers
# =============================================================================


def render_context(context: str | None) -> str:
    return ADDITIONAL_CONTEXT.format(context=context.strip()) if context and context.strip() else ""


def render_features(features) -> str:
    if not features:
        return "  (none)"
    return "\n".join(
        f"  - {f.name} [{f.priority.value}]: {f.description}" for f in features
    )


def render_personas(personas) -> str:
    if not personas:
        return "- (none)"
    lines = []
    for p in personas:
        lines.append(f"- {p.name} ({p.role})")
        if p.goals:
            lines.append(f"  Goals: {', '.join(p.goals)}")
        if p.needs:
            lines.append(f"  Needs: {', '.join(p.needs)}")
        if p.pain_points:
            lines.append(f"  Pain points: {', '.join(p.pain_points)}")
    return "\n".join(lines)


def render_stories(stories) -> str:
    if not stories:
        return "- (none)"
    return "\n".join(
        f"- {s.id} [{s.priority.value}, {s.story_points} pts] {s.title}: "
        f"As a {s.persona}, I want to {s.user_action} so that {s.benefit}"
        for s in stories
    )
