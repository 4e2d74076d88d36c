ENTITY_TYPES = ("company", "division", "product", "unknown")

# Types counted as companies in the index meta block
COMPANY_LIKE_TYPES = ("company", "division")

OWNERSHIP_TYPES = ("public", "private")

# Industry -> keywords, matched as plain substrings of the lowercased context
INDUSTRY_KEYWORDS = {
    "Cloud & Infrastructure": ["cloud", "infrastructure", "iaas", "paas", "hosting", "cdn", "edge"],
    "Cybersecurity": ["security", "cybersecurity", "endpoint", "firewall", "threat", "malware", "antivirus"],
    "Enterprise Software": ["erp", "enterprise", "business software", "sap", "oracle"],
    "Data & Analytics": ["data", "analytics", "warehouse", "database", "bi ", "business intelligence"],
    "DevOps & Development": ["devops", "developer", "git", "ci/cd", "code", "software development"],
    "HR & Payroll": ["payroll", "hr ", "human resources", "hcm", "workforce"],
    "CRM & Marketing": ["crm", "marketing", "customer", "salesforce", "hubspot"],
    "Financial Software": ["financial", "accounting", "fintech", "payment", "billing"],
    "Design & Engineering": ["cad", "plm", "simulation", "design", "engineering"],
    "Collaboration": ["collaboration", "communication", "video", "meeting", "document"],
    "AI & Machine Learning": ["ai ", "artificial intelligence", "machine learning", "ml "],
    "Healthcare & Life Sciences": ["healthcare", "life sciences", "pharma", "medical", "clinical"],
}
