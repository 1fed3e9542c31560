"""
Code-defined course definitions.

These provide the structural fallback for curricula (when no admin content exists) and the UI
metadata (short titles, module colors, resources) that admin course settings do not carry.
"""
from __future__ import annotations

import re
from typing import Dict, List

from schemas.course import BonusModule, Lesson, Resource, StaticCourseDefinition, StaticModule


def _lesson(title: str, duration: str, description: str) -> Lesson:
    return Lesson(title=title, duration=duration, description=description)


BEGINNER_COURSE = StaticCourseDefinition(
    id="beginner-course",
    title="Beginners: From Book to Buy-to-Let",
    short_title="Beginners",
    modules=[
        StaticModule(
            number=1,
            title="Getting Started the Right Way",
            duration="35 min",
            color="indigo",
            description="Lay the groundwork for a successful property investment journey. Set clear goals, "
                        "understand the landscape, and build the right team around you from day one.",
            lessons=[
                _lesson("Why buy-to-let, and why now", "12 min",
                        "Understand the fundamentals of buy-to-let investing and why it remains one of the most "
                        "reliable wealth-building strategies in the UK."),
                _lesson("Setting your investment goals and timeline", "11 min",
                        "Define what success looks like for you, whether it's replacing your income, building "
                        "long-term equity, or creating a retirement fund."),
                _lesson("Building your power team (broker, solicitor, accountant)", "12 min",
                        "Learn who you need in your corner, how to find them, and what to look for in a great "
                        "mortgage broker, property solicitor, and accountant."),
            ],
        ),
        StaticModule(
            number=2,
            title="Understanding the Numbers",
            duration="40 min",
            color="purple",
            description="Master the financial fundamentals that separate profitable deals from money pits. "
                        "Learn to analyse any property in minutes with confidence.",
            lessons=[
                _lesson("The key metrics: yield, ROI, and cashflow", "14 min",
                        "Understand the three numbers every investor must know, and how to calculate them "
                        "quickly for any property you're considering."),
                _lesson("Running the numbers on a real deal (walkthrough)", "14 min",
                        "Follow along as we analyse a real property listing step by step, using the included "
                        "Deal Analyser spreadsheet."),
                _lesson("Stress-testing your deal against rate rises", "12 min",
                        "Learn how to pressure-test your numbers against interest rate increases, void periods, "
                        "and unexpected costs so you never get caught out."),
            ],
        ),
        StaticModule(
            number=3,
            title="Finding the Right Property",
            duration="38 min",
            color="emerald",
            description="Discover where to look, what to look for, and how to spot opportunity where others "
                        "see risk. From online portals to off-market gems.",
            lessons=[
                _lesson("Choosing the right area and tenant type", "13 min",
                        "Learn how to research areas, assess tenant demand, and match locations to your "
                        "investment strategy and budget."),
                _lesson("Where to search: portals, agents, and off-market", "12 min",
                        "Go beyond Rightmove. Discover how to build relationships with agents, find off-market "
                        "deals, and use auction sites effectively."),
                _lesson("Viewing properties: what to look for and red flags", "13 min",
                        "Use the included Viewing Checklist to inspect properties like a pro. Know exactly what "
                        "to look for, and what should make you walk away."),
            ],
        ),
        StaticModule(
            number=4,
            title="Financing Your Investment",
            duration="36 min",
            color="amber",
            description="Navigate the world of buy-to-let mortgages with clarity. Understand what lenders want, "
                        "how much you really need, and how to get the best deal.",
            lessons=[
                _lesson("Buy-to-let mortgages explained", "13 min",
                        "A clear, jargon-free guide to how buy-to-let mortgages work, including interest-only vs "
                        "repayment, fixed vs variable, and stress tests."),
                _lesson("How much deposit do you really need?", "11 min",
                        "Understand the real numbers behind deposits, stamp duty, legal fees, and refurbishment "
                        "costs, so there are no surprises."),
                _lesson("Working with a mortgage broker", "12 min",
                        "Learn why a good broker is worth their weight in gold, how to choose one, and what "
                        "information to have ready before your first call."),
            ],
        ),
        StaticModule(
            number=5,
            title="Making Offers and Closing Deals",
            duration="38 min",
            color="rose",
            description="Learn to negotiate with confidence, navigate the legal process, and get from offer "
                        "accepted to keys in hand without the stress.",
            lessons=[
                _lesson("How to make a strong offer (and negotiate)", "13 min",
                        "Understand the psychology of negotiation, how to justify your offer, and when to push "
                        "harder or walk away."),
                _lesson("The conveyancing process step by step", "13 min",
                        "Demystify the legal process from offer acceptance to exchange. Know what your solicitor "
                        "is doing and what you need to provide."),
                _lesson("Exchange, completion, and getting the keys", "12 min",
                        "Understand the final stages of the purchase: exchange of contracts, completion day, and "
                        "what happens immediately after."),
            ],
        ),
        StaticModule(
            number=6,
            title="Becoming a Landlord",
            duration="36 min",
            color="cyan",
            description="Set yourself up as a professional, compliant landlord from day one. Find great tenants, "
                        "understand your obligations, and manage for long-term profit.",
            lessons=[
                _lesson("Finding and vetting quality tenants", "12 min",
                        "Learn how to market your property, conduct viewings, run reference checks, and select "
                        "tenants who'll look after your investment."),
                _lesson("Legal obligations every landlord must know", "12 min",
                        "From gas safety certificates to deposit protection, understand the legal requirements "
                        "so you stay compliant and protected."),
                _lesson("Managing your property for long-term profit", "12 min",
                        "Self-manage vs letting agent, handling maintenance, rent reviews, and building a system "
                        "that runs smoothly month after month."),
            ],
        ),
    ],
    bonus_module=BonusModule(
        title="Bonus: Deal Walkthrough(s) + Q&A",
        description="See the entire process in action with real deal walkthroughs, learn from common mistakes, "
                    "and get answers to the most frequently asked questions.",
        lessons=[
            _lesson("Live deal walkthrough: from search to completion", "18 min",
                    "Follow a real deal from the initial property search through analysis, offer, negotiation, "
                    "and all the way to completion day."),
            _lesson("Common mistakes and how to avoid them", "12 min",
                    "Learn from the most common errors new investors make, and the simple steps to avoid each one."),
            _lesson("Live Q&A recordings", "25 min",
                    "Curated recordings from live Q&A sessions covering the questions students ask most often."),
        ],
    ),
    resources=[
        Resource(name="Deal Analyser Spreadsheet", type="spreadsheet", module_number=2,
                 description="Plug in any property and instantly see yield, ROI, cashflow, and stress-test results."),
        Resource(name="Viewing Checklist", type="checklist", module_number=3,
                 description="A printable checklist to take with you on every property viewing."),
        Resource(name="Mortgage Comparison Template", type="template", module_number=4,
                 description="Compare mortgage offers side by side with all the key figures."),
        Resource(name="Offer Letter Template", type="template", module_number=5,
                 description="A professional offer letter template you can customise for any property."),
        Resource(name="Tenant Referencing Checklist", type="checklist", module_number=6,
                 description="Everything you need to check before accepting a tenant."),
        Resource(name="Landlord Compliance Checklist", type="checklist", module_number=6,
                 description="All the legal requirements and certificates you need as a landlord."),
        Resource(name="Investment Goals Worksheet", type="pdf", module_number=1,
                 description="A guided worksheet to define your property investment goals and timeline."),
        Resource(name="Monthly Cashflow Tracker", type="spreadsheet",
                 description="Track your rental income, expenses, and net cashflow month by month."),
    ],
)


def _module(number: int, title: str, duration: str, color: str, description: str,
            lessons: List[Lesson]) -> StaticModule:
    return StaticModule(number=number, title=title, duration=duration, color=color,
                        description=description, lessons=lessons)


MASTERCLASS_COURSE = StaticCourseDefinition(
    id="masterclass",
    title="Property Investor Masterclass",
    short_title="Masterclass",
    modules=[
        _module(1, "The Investor Mindset", "45 min", "amber",
                "Develop the psychology and discipline that separates successful property investors from everyone else.",
                [
                    _lesson("Why most investors fail, and how to avoid it", "15 min",
                            "Understand the common psychological traps that derail property investors."),
                    _lesson("Building your investment thesis", "15 min",
                            "Create a clear, written investment strategy that guides every decision."),
                    _lesson("Risk management and emotional discipline", "15 min",
                            "Learn to separate emotion from analysis and manage downside risk."),
                ]),
        _module(2, "Market Analysis & Research", "50 min", "emerald",
                "Master the art of reading property markets and identifying emerging opportunities.",
                [
                    _lesson("Reading the property market cycle", "18 min",
                            "Understand the four phases of the property cycle."),
                    _lesson("Area analysis: demographics, infrastructure & demand", "16 min",
                            "Use data-driven research to identify high-growth areas."),
                    _lesson("Comparable analysis and valuation techniques", "16 min",
                            "Learn professional valuation methods."),
                ]),
        _module(3, "Advanced Deal Analysis", "55 min", "indigo",
                "Master sophisticated financial modelling and the metrics professional investors use.",
                [
                    _lesson("Advanced metrics: ROCE, IRR, and equity multiple", "18 min",
                            "Learn the advanced financial metrics that institutional investors use."),
                    _lesson("Building a comprehensive deal model", "20 min",
                            "Create a full financial model for any property deal."),
                    _lesson("Sensitivity analysis and worst-case planning", "17 min",
                            "Stress-test every deal against multiple scenarios."),
                ]),
        _module(4, "Financing Strategies", "50 min", "purple",
                "Understand the full spectrum of financing options available to property investors.",
                [
                    _lesson("Portfolio lending and commercial finance", "17 min",
                            "Understand how portfolio and commercial lending works."),
                    _lesson("Limited company structures and tax planning", "18 min",
                            "Explore the pros and cons of buying through a limited company."),
                    _lesson("Refinancing, recycling capital, and the BRRRR method", "15 min",
                            "Master the strategy of buying, refurbishing, refinancing."),
                ]),
        _module(5, "Portfolio Strategy & Scaling", "48 min", "rose",
                "Plan and execute a portfolio strategy that compounds over time.",
                [
                    _lesson("Building a portfolio plan: 1, 5, and 10-year roadmap", "16 min",
                            "Create a realistic, phased plan for growing your portfolio."),
                    _lesson("Diversification: geography, property type, and tenant mix", "16 min",
                            "Reduce risk by diversifying across locations and types."),
                    _lesson("When to sell, remortgage, or hold", "16 min",
                            "Make strategic decisions about your existing portfolio."),
                ]),
        _module(6, "Refurbishment & Value-Add", "45 min", "cyan",
                "Learn to add value through smart refurbishment.",
                [
                    _lesson("Identifying value-add opportunities", "15 min",
                            "Spot properties where strategic improvements can significantly increase value."),
                    _lesson("Budgeting, project management, and contractor relations", "15 min",
                            "Manage refurbishment projects professionally."),
                    _lesson("High-ROI improvements vs vanity projects", "15 min",
                            "Focus your budget on improvements that deliver the highest return."),
                ]),
        _module(7, "Tax, Legal & Compliance", "50 min", "amber",
                "Navigate the complex world of property tax, legal structures, and regulatory compliance.",
                [
                    _lesson("Income tax, CGT, and stamp duty for investors", "18 min",
                            "Understand the full tax landscape for property investors."),
                    _lesson("Legal structures: personal vs company ownership", "16 min",
                            "Compare ownership structures."),
                    _lesson("Regulatory compliance and landlord obligations", "16 min",
                            "Stay compliant with evolving regulations."),
                ]),
        _module(8, "Building Long-Term Wealth", "45 min", "emerald",
                "Tie everything together into a sustainable, long-term wealth-building system.",
                [
                    _lesson("Creating passive income through systemisation", "15 min",
                            "Build systems that allow your portfolio to run with minimal involvement."),
                    _lesson("Estate planning and wealth transfer", "15 min",
                            "Plan for the long term: inheritance tax, trusts, and wealth transfer."),
                    _lesson("Your personalised action plan", "15 min",
                            "Bring everything together into a personalised, actionable plan."),
                ]),
    ],
    resources=[
        Resource(name="Advanced Deal Model Spreadsheet", type="spreadsheet", module_number=3,
                 description="Full financial model with IRR, ROCE, and equity multiple calculations."),
        Resource(name="Market Cycle Analysis Framework", type="pdf", module_number=2,
                 description="A framework for identifying where we are in the property cycle."),
        Resource(name="Area Research Template", type="template", module_number=2,
                 description="A structured template for researching and comparing investment areas."),
        Resource(name="Portfolio Planning Roadmap", type="template", module_number=5,
                 description="Map out your 1, 5, and 10-year portfolio growth plan."),
        Resource(name="Refurbishment Budget Planner", type="spreadsheet", module_number=6,
                 description="Plan and track refurbishment costs with built-in contingency."),
        Resource(name="Tax Planning Checklist", type="checklist", module_number=7,
                 description="Key tax considerations and allowable expenses for property investors."),
        Resource(name="BRRRR Strategy Calculator", type="spreadsheet", module_number=4,
                 description="Model the full BRRRR cycle including refinance and capital recycling."),
        Resource(name="Wealth Building Action Plan", type="guide", module_number=8,
                 description="Your personalised action plan template to complete after the course."),
    ],
)

# Virtual course: its content is the admin-uploaded starter resources
STARTER_PACK_COURSE = StaticCourseDefinition(
    id="starter-pack",
    title="Starter Pack Resources",
    short_title="Starter Pack",
)

STATIC_COURSES: Dict[str, StaticCourseDefinition] = {
    course.id: course for course in (BEGINNER_COURSE, MASTERCLASS_COURSE, STARTER_PACK_COURSE)
}


def total_lessons(course: StaticCourseDefinition) -> int:
    """Lesson count across all modules, bonus included."""
    total = sum(len(m.lessons) for m in course.modules)
    if course.bonus_module:
        total += len(course.bonus_module.lessons)
    return total


_LEADING_INT = re.compile(r"^\s*(\d+)")


def _minutes(duration: str) -> int:
    match = _LEADING_INT.match(duration or "")
    return int(match.group(1)) if match else 0


def total_duration_minutes(course: StaticCourseDefinition) -> int:
    """Sum of module durations plus bonus lesson durations; unparsable values count as zero."""
    total = sum(_minutes(m.duration) for m in course.modules)
    if course.bonus_module:
        total += sum(_minutes(lesson.duration) for lesson in course.bonus_module.lessons)
    return total
