"""Fixed vocabularies used by the heuristic analyzers.

These lists are matched literally (lower-cased substring or exact-name tests).
Changing an entry changes which repositories are classified as static, so
edit them together with the tests in ``tests/test_score_engine.py``.
"""

# README: words that indicate the project needs a backend process
BACKEND_KEYWORDS = [
    "api", "server", "backend", "database",
    "mysql", "postgresql", "postgres", "mongodb", "redis", "sqlite", "mariadb",
    "express", "koa", "nestjs", "fastify", "django", "flask", "fastapi",
    "spring boot", "laravel", "rails",
    "prisma", "sequelize", "typeorm", "mongoose",
    "next-auth", "passport", "jwt",
    "socket.io", "websocket", "graphql", "apollo",
    "后端", "服务器", "数据库",
]

# README: static / directly runnable project vocabulary
STATIC_DEPLOY_KEYWORDS = [
    # 项目类型
    "blog", "portfolio", "gallery", "game", "demo", "showcase", "website",
    "personal website", "作品集", "博客", "画廊", "游戏", "展示", "网站",
    # 技术栈
    "html", "css", "javascript", "react", "vue", "angular", "svelte",
    "next.js", "nuxt", "gatsby", "astro", "sveltekit",
    # 部署相关
    "static", "spa", "frontend", "client-side", "browser",
    # 运行相关
    "npm start", "yarn dev", "npm run dev", "serve", "localhost",
    "可以直接运行", "直接部署", "一键部署",
]

PREVIEW_URL_KEYWORDS = [
    "live demo", "preview", "demo", "visit", "access", "online",
    "vercel.app", "netlify.app", "github.io", "预览", "访问", "在线",
    "try it", "see it live", "check it out", "体验", "试用",
]

# URL fragments that mark an extracted link as a preview link
PREVIEW_URL_HOSTS = ["vercel.app", "netlify.app", "github.io", "demo", "preview"]

DEPLOY_BUTTON_KEYWORDS = [
    "deploy", "vercel", "netlify", "github pages", "部署", "一键部署",
    "deploy button", "one-click deploy", "一键部署按钮",
    "vercel deploy", "netlify deploy", "github pages deploy",
]

# (platform label, keyword that must appear in the README)
DEPLOY_PLATFORMS = [
    ("Vercel", "vercel"),
    ("Netlify", "netlify"),
    ("GitHub Pages", "github pages"),
]

# about metadata: topic fragments that suggest a static project
STATIC_TOPIC_FRAGMENTS = [
    "static", "website", "portfolio", "blog", "gallery", "game", "demo",
    "frontend", "spa", "github-pages", "gh-pages", "vercel", "netlify",
    "html", "css", "jamstack", "landing-page",
]

# file structure: directory entry names (case-insensitive exact match)
INDEX_HTML_FILES = ["index.html"]
STATIC_OUTPUT_DIRS = {"public": "has_public_dir", "dist": "has_dist_dir", "out": "has_out_dir"}
NEXT_CONFIG_FILES = ["next.config.js", "next.config.mjs", "next.config.ts"]
VITE_CONFIG_FILES = ["vite.config.js", "vite.config.mjs", "vite.config.ts"]
VUE_CONFIG_FILES = ["vue.config.js", "vue.config.ts"]
REACT_LAYOUT_FILES = ["craco.config.js", "react-app-env.d.ts"]
MANIFEST_FILE = "package.json"

# manifest: dependency names that require a server process
BACKEND_DEPENDENCIES = [
    # web frameworks
    "express", "koa", "fastify", "@nestjs/core", "hapi", "@hapi/hapi", "restify",
    # ORMs / DB drivers
    "mongoose", "sequelize", "typeorm", "prisma", "@prisma/client", "knex",
    "pg", "mysql", "mysql2", "mongodb", "redis", "ioredis", "sqlite3", "better-sqlite3",
    # auth / session
    "passport", "express-session", "jsonwebtoken", "next-auth", "bcrypt",
    # realtime / graphql
    "socket.io", "ws", "graphql", "apollo-server", "@apollo/server", "firebase-admin",
]

BUILD_SCRIPT_FRAGMENTS = ["build", "export", "generate"]

# filter rules: trigger phrases per rule list
ONLY_SHOW_PHRASES = ["只显示", "只要", "仅显示", "only show", "only", "show only"]
EXCLUDE_PHRASES = ["排除", "不要", "不包含", "exclude", "without", "no "]
PRIORITIZE_PHRASES = ["优先", "prioritize", "prefer", "rank"]
REQUIRE_PHRASES = ["必须", "需要", "要求", "must", "require", "need"]
# negated requirements ("no need for a backend") route to exclude
NEGATED_REQUIRE_PHRASES = [
    "不需要", "无需", "不用", "不必", "no need", "don't need", "do not need", "doesn't need",
    "does not need", "not require", "not need",
]

# words ignored when matching a free-form condition against repository text
CONDITION_STOPWORDS = {
    "the", "and", "with", "have", "has", "must", "only", "show", "should", "that",
    "for", "are", "use", "uses", "using", "project", "projects", "repo", "repository",
}

# filter rules: (concept triggers, canned condition phrase)
FILTER_CONCEPTS = [
    (["前端", "frontend", "front-end"], "frontend project"),
    (["静态", "static"], "static site"),
    (["react"], "uses React"),
    (["vue"], "uses Vue"),
    (["数据库", "database"], "uses a database"),
    (["服务器", "后端", "server", "backend"], "requires a server"),
    (["预览", "演示", "preview", "demo"], "has a live preview"),
    (["最近", "最新", "活跃", "recent", "latest", "active"], "recently updated"),
    (["star", "星", "热门", "popular"], "high star count"),
]

# filter rules: textual indicators for each canned condition
CONDITION_INDICATORS = {
    "frontend project": ["frontend", "front-end", "react", "vue", "angular", "svelte", "html", "css", "前端"],
    "static site": ["static", "github pages", "github.io", "jamstack", "静态"],
    "uses React": ["react"],
    "uses Vue": ["vue"],
    "uses a database": ["database", "mysql", "postgres", "mongodb", "redis", "sqlite", "数据库"],
    "requires a server": ["server", "backend", "express", "django", "flask", "后端", "服务器"],
    "has a live preview": ["demo", "preview", "vercel.app", "netlify.app", "github.io", "预览", "演示"],
}

RECENT_CONDITION = "recently updated"
STARS_CONDITION = "high star count"
HIGH_STAR_THRESHOLD = 1000
