"""
Agents behind the campus safety chatbot

- PreprocessingAgent: Text cleaning, chunking and category suggestion
- SafetyQAAgent: Retrieval-augmented question answering
- ReportIntakeAgent: Turns finalized chatbot intakes into reports
"""
