"""
Allow running the agent as a module: python -m pulse_agent
"""
from pulse_agent.agent import main


if __name__ == '__main__':
    main()
